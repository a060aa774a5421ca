"""Conteo agregado: totales, porcentajes y ganadores.

Tally: totals, percentages and winners. Ties produce several winners.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .models import Candidate, VotingStatus


def votes_label(count: int) -> str:
    return f"{count} vote{'' if count == 1 else 's'}"


@dataclass(frozen=True)
class TallyRow:
    """Fila del conteo para un candidato.

    English: Tally row for one candidate.
    """

    candidate: Candidate
    percentage: float
    is_winner: bool

    @property
    def votes_label(self) -> str:
        return votes_label(self.candidate.vote_count)

    @property
    def percentage_label(self) -> str:
        return f"{self.percentage:.1f}%"


@dataclass(frozen=True)
class Tally:
    """Resultado agregado de una votación.

    Attributes:
        total_votes (int): Suma de votos.
        max_votes (int): Máximo de votos de un candidato (0 sin candidatos).
        rows (Tuple[TallyRow, ...]): Filas ordenadas por índice.

    English:
        Aggregated result of a voting.
    """

    total_votes: int
    max_votes: int
    rows: Tuple[TallyRow, ...]

    @property
    def winners(self) -> Tuple[int, ...]:
        return tuple(row.candidate.index for row in self.rows if row.is_winner)

    @property
    def total_label(self) -> str:
        return f"{votes_label(self.total_votes)} total"


def build_tally(candidates: Sequence[Candidate], status: VotingStatus) -> Tally:
    """Construye el conteo para el estado dado.

    Un candidato gana si iguala el máximo, el máximo es positivo y la votación
    está terminada o finalizada. No hay desempate.

    English:
        Build the tally for the given status. A candidate wins when it
        matches the maximum, the maximum is positive, and the voting is ended
        or finalized. No tie-break is applied.
    """
    ordered = sorted(candidates, key=lambda candidate: candidate.index)
    total = sum(candidate.vote_count for candidate in ordered)
    max_votes = max((candidate.vote_count for candidate in ordered), default=0)
    rows = tuple(
        TallyRow(
            candidate=candidate,
            percentage=(candidate.vote_count / total * 100) if total > 0 else 0.0,
            is_winner=(
                status.is_closed
                and max_votes > 0
                and candidate.vote_count == max_votes
            ),
        )
        for candidate in ordered
    )
    return Tally(total_votes=total, max_votes=max_votes, rows=rows)
