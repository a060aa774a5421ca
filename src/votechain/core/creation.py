"""Validación de nuevas votaciones y estado del formulario de creación.

Validation of new votings and creation form state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..errors import CreationValidationError
from ..timeutils import PickerValue, to_epoch_seconds

MIN_CANDIDATES = 2

REASON_MIN_CANDIDATES = "At least 2 candidates are required"
REASON_TITLE = "Title is required"
REASON_TIMES = "Start and end times are required"
REASON_ORDER = "End time must be after start time"


class CreationPayload(BaseModel):
    """Carga normalizada lista para el puerto de escritura.

    English: Normalized payload ready for the write port.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    candidate_names: List[str] = Field(min_length=MIN_CANDIDATES)
    start_time: int = Field(ge=0)
    end_time: int = Field(ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(REASON_TITLE)
        return cleaned

    @field_validator("candidate_names")
    @classmethod
    def names_not_blank(cls, value: List[str]) -> List[str]:
        if any(not name.strip() for name in value):
            raise ValueError("Candidate names cannot be blank")
        return [name.strip() for name in value]

    @model_validator(mode="after")
    def window_is_ordered(self) -> "CreationPayload":
        if self.start_time >= self.end_time:
            raise ValueError(REASON_ORDER)
        return self


def _parse_time(value: PickerValue) -> Optional[int]:
    try:
        seconds = to_epoch_seconds(value)
    except (TypeError, ValueError, OverflowError):
        return None
    # Epoch seconds before 1970 are not valid ledger times.
    if seconds is None or seconds < 0:
        return None
    return seconds


def validate_creation(
    title: Optional[str],
    candidate_names: Sequence[Optional[str]],
    start: PickerValue,
    end: PickerValue,
) -> CreationPayload:
    """Valida una votación propuesta; la primera regla que falla gana.

    Reglas en orden: al menos 2 candidatos no vacíos (los vacíos se descartan
    en silencio), título no vacío, inicio y fin presentes, inicio < fin.

    English:
        Validate a proposed voting; the first failing rule wins. Raises
        ``CreationValidationError`` with a user-facing reason. No partial
        payload is ever returned.
    """
    names = [name.strip() for name in candidate_names if name and name.strip()]
    if len(names) < MIN_CANDIDATES:
        raise CreationValidationError(REASON_MIN_CANDIDATES)

    cleaned_title = (title or "").strip()
    if not cleaned_title:
        raise CreationValidationError(REASON_TITLE)

    start_time = _parse_time(start)
    end_time = _parse_time(end)
    if start_time is None or end_time is None:
        raise CreationValidationError(REASON_TIMES)

    if start_time >= end_time:
        raise CreationValidationError(REASON_ORDER)

    return CreationPayload(
        title=cleaned_title,
        candidate_names=names,
        start_time=start_time,
        end_time=end_time,
    )


def _blank_rows() -> List[str]:
    return [""] * MIN_CANDIDATES


@dataclass
class CreationForm:
    """Estado editable del formulario de creación.

    English:
        Editable creation form state. Starts with two blank candidate rows;
        rows can be added freely but never removed below two.
    """

    title: str = ""
    candidates: List[str] = field(default_factory=_blank_rows)
    start: PickerValue = None
    end: PickerValue = None
    error: Optional[str] = None

    def add_candidate(self, name: str = "") -> None:
        self.candidates.append(name)

    def remove_candidate(self, index: int) -> bool:
        if len(self.candidates) <= MIN_CANDIDATES:
            return False
        del self.candidates[index]
        return True

    def update_candidate(self, index: int, value: str) -> None:
        self.candidates[index] = value

    def to_payload(self) -> CreationPayload:
        """Valida el formulario y registra el motivo si falla.

        English: Validate the form, recording the reason on failure.
        """
        self.error = None
        try:
            return validate_creation(self.title, self.candidates, self.start, self.end)
        except CreationValidationError as exc:
            self.error = exc.reason
            raise

    def reset(self) -> None:
        self.title = ""
        self.candidates = _blank_rows()
        self.start = None
        self.end = None
        self.error = None
