"""Derivación del estado de una votación.

Lifecycle status derivation for one voting.
"""

from __future__ import annotations

from typing import Optional

from ..timeutils import now_seconds
from .models import VotingFields, VotingStatus


def derive_status(
    start_time: Optional[int],
    end_time: Optional[int],
    finalized: Optional[bool],
    now: Optional[int] = None,
) -> VotingStatus:
    """Calcula el estado a partir de los campos crudos.

    Los valores desconocidos se tratan como ``0``/``False``, lo que sesga el
    resultado hacia ``ended`` y nunca concede derechos de voto prematuros.

    English:
        Compute the status from raw fields. Priority: finalized, degenerate
        window (``start >= end``), upcoming, ended, active.
    """
    if finalized:
        return VotingStatus.FINALIZED
    current = now_seconds() if now is None else now
    start = int(start_time or 0)
    end = int(end_time or 0)
    if start >= end:
        return VotingStatus.ENDED
    if current < start:
        return VotingStatus.UPCOMING
    if current > end:
        return VotingStatus.ENDED
    return VotingStatus.ACTIVE


def status_of(fields: VotingFields, now: Optional[int] = None) -> VotingStatus:
    return derive_status(fields.start_time, fields.end_time, fields.finalized, now)
