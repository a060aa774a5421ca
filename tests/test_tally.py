"""Pruebas del conteo agregado.

Tally tests.
"""

import pytest

from votechain.core.models import Candidate, VotingStatus
from votechain.core.tally import build_tally, votes_label


def _candidates(*counts):
    return [Candidate(index=index, name=f"C{index}", vote_count=count) for index, count in enumerate(counts)]


def test_tie_yields_multiple_winners_when_ended():
    tally = build_tally(_candidates(3, 3, 1), VotingStatus.ENDED)

    assert tally.total_votes == 7
    assert tally.max_votes == 3
    assert tally.winners == (0, 1)


@pytest.mark.parametrize("status", [VotingStatus.UPCOMING, VotingStatus.ACTIVE])
def test_no_winners_while_open(status):
    assert build_tally(_candidates(5, 1), status).winners == ()


def test_no_winners_without_votes():
    tally = build_tally(_candidates(0, 0), VotingStatus.FINALIZED)

    assert tally.winners == ()
    assert [row.percentage for row in tally.rows] == [0.0, 0.0]


def test_empty_tally():
    tally = build_tally([], VotingStatus.ENDED)

    assert tally.total_votes == 0
    assert tally.max_votes == 0
    assert tally.rows == ()


def test_percentages_and_labels():
    tally = build_tally(_candidates(3, 3, 1), VotingStatus.ACTIVE)
    first, _, last = tally.rows

    assert first.percentage == pytest.approx(300 / 7)
    assert first.percentage_label == "42.9%"
    assert last.votes_label == "1 vote"
    assert first.votes_label == "3 votes"
    assert tally.total_label == "7 votes total"


def test_rows_are_ordered_by_index():
    shuffled = [
        Candidate(index=2, name="C", vote_count=1),
        Candidate(index=0, name="A", vote_count=4),
        Candidate(index=1, name="B", vote_count=2),
    ]

    tally = build_tally(shuffled, VotingStatus.FINALIZED)

    assert [row.candidate.name for row in tally.rows] == ["A", "B", "C"]
    assert tally.winners == (0,)


def test_votes_label_zero():
    assert votes_label(0) == "0 votes"
