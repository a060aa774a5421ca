"""Pruebas del validador de creación y del formulario.

Creation validator and form tests.
"""

import pytest
from pydantic import ValidationError

from votechain.core.creation import (
    REASON_MIN_CANDIDATES,
    REASON_ORDER,
    REASON_TIMES,
    REASON_TITLE,
    CreationForm,
    CreationPayload,
    validate_creation,
)
from votechain.errors import CreationValidationError

START = 1_800_000_000
END = START + 3600


def test_blank_candidates_are_dropped():
    payload = validate_creation("  Favourite  ", ["Alice", "  ", "Bob"], START, END)

    assert payload.title == "Favourite"
    assert payload.candidate_names == ["Alice", "Bob"]
    assert payload.start_time == START
    assert payload.end_time == END


def test_names_are_trimmed_and_order_preserved():
    payload = validate_creation("T", [" Zed ", "", "Amy", None], START, END)

    assert payload.candidate_names == ["Zed", "Amy"]


def test_single_candidate_fails_on_minimum():
    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("Title", ["Alice"], START, END)

    assert excinfo.value.reason == REASON_MIN_CANDIDATES


def test_equal_start_and_end_fails_on_ordering():
    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("Title", ["Alice", "Bob"], START, START)

    assert excinfo.value.reason == REASON_ORDER


def test_rules_short_circuit_in_order():
    """Español: La primera regla que falla determina el motivo.

    English: The first failing rule determines the reason.
    """
    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("", ["Alice", " "], None, None)
    assert excinfo.value.reason == REASON_MIN_CANDIDATES

    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("   ", ["Alice", "Bob"], None, None)
    assert excinfo.value.reason == REASON_TITLE

    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("Title", ["Alice", "Bob"], START, None)
    assert excinfo.value.reason == REASON_TIMES

    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("Title", ["Alice", "Bob"], END, START)
    assert excinfo.value.reason == REASON_ORDER


def test_picker_strings_are_converted():
    payload = validate_creation(
        "Title",
        ["Alice", "Bob"],
        "2026-10-17T10:00:00+00:00",
        "2026-10-17T11:00:00+00:00",
    )

    assert payload.end_time - payload.start_time == 3600


def test_unparseable_time_counts_as_missing():
    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("Title", ["Alice", "Bob"], "tomorrow-ish", END)

    assert excinfo.value.reason == REASON_TIMES


def test_payload_model_enforces_invariants():
    with pytest.raises(ValidationError):
        CreationPayload(title="T", candidate_names=["A"], start_time=START, end_time=END)
    with pytest.raises(ValidationError):
        CreationPayload(title="T", candidate_names=["A", "B"], start_time=END, end_time=START)


def test_form_keeps_two_rows_minimum():
    form = CreationForm()

    assert form.candidates == ["", ""]
    assert form.remove_candidate(0) is False
    form.add_candidate("Carol")
    assert form.remove_candidate(0) is True
    assert form.candidates == ["", "Carol"]


def test_form_records_reason_and_keeps_input():
    form = CreationForm(title="Poll", candidates=["Alice", ""], start=START, end=END)

    with pytest.raises(CreationValidationError):
        form.to_payload()

    assert form.error == REASON_MIN_CANDIDATES
    assert form.title == "Poll"
    assert form.candidates == ["Alice", ""]

    form.update_candidate(1, "Bob")
    payload = form.to_payload()

    assert form.error is None
    assert payload.candidate_names == ["Alice", "Bob"]


def test_form_reset():
    form = CreationForm(title="Poll", candidates=["A", "B", "C"], start=START, end=END, error="x")

    form.reset()

    assert form == CreationForm()


@pytest.mark.parametrize("start,end", [(-10, END), (-3600, -10), ("-10", END)])
def test_negative_times_count_as_missing(start, end):
    with pytest.raises(CreationValidationError) as excinfo:
        validate_creation("Title", ["Alice", "Bob"], start, end)

    assert excinfo.value.reason == REASON_TIMES


def test_form_reports_negative_time_as_reason():
    form = CreationForm(title="Poll", candidates=["Alice", "Bob"], start=-10, end=5)

    with pytest.raises(CreationValidationError):
        form.to_payload()

    assert form.error == REASON_TIMES
