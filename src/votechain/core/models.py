"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votechain/core/models.py`.
Tipos de valor del motor: campos crudos de una votación, candidatos,
estado derivado e intención de voto.

Componentes detectados:
  - VotingStatus
  - Candidate
  - VotingFields
  - VoteIntent

Notas:
- Los campos sin resolver se representan con ``None``.
- El estado derivado nunca se guarda en estos tipos.

======================== ENGLISH ========================
File: `src/votechain/core/models.py`.
Engine value types: raw voting fields, candidates, derived status and vote
intent.

Detected components:
  - VotingStatus
  - Candidate
  - VotingFields
  - VoteIntent

Notes:
- Unresolved fields are represented with ``None``.
- Derived status is never stored in these types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..ports import same_identity


class VotingStatus(str, Enum):
    """Estados del ciclo de vida de una votación."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"
    FINALIZED = "finalized"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def is_closed(self) -> bool:
        """Español: Votación cerrada (terminada o finalizada).

        English: Closed voting (ended or finalized).
        """
        return self in {VotingStatus.ENDED, VotingStatus.FINALIZED}


@dataclass(frozen=True)
class Candidate:
    """Candidato de una votación, direccionado por índice.

    Attributes:
        index (int): Posición 0-based, estable durante la votación.
        name (str): Nombre a mostrar.
        vote_count (int): Votos registrados.

    English:
        Index-addressed candidate of a voting.

    Attributes:
        index (int): Stable 0-based position.
        name (str): Display name.
        vote_count (int): Recorded votes.
    """

    index: int
    name: str
    vote_count: int


@dataclass(frozen=True)
class VotingFields:
    """Campos crudos de una votación tal como llegan del ledger.

    Attributes:
        address (str): Identificador único de la votación.
        title (Optional[str]): Título, inmutable tras la creación.
        start_time (Optional[int]): Inicio en segundos epoch.
        end_time (Optional[int]): Fin en segundos epoch.
        finalized (Optional[bool]): Bandera de finalización.
        creator (Optional[str]): Cuenta que desplegó la votación.
        candidates_count (Optional[int]): Cantidad fija de candidatos.
        has_voted (Optional[bool]): Participación de la identidad actual.

    English:
        Raw voting fields as they arrive from the ledger; ``None`` means the
        read has not resolved (or failed).
    """

    address: str
    title: Optional[str] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    finalized: Optional[bool] = None
    creator: Optional[str] = None
    candidates_count: Optional[int] = None
    has_voted: Optional[bool] = None

    def is_creator(self, identity: Optional[str]) -> bool:
        return same_identity(identity, self.creator)


@dataclass(frozen=True)
class VoteIntent:
    """Intención de voto por un índice de candidato.

    English: Intent to vote for one candidate index.
    """

    voting: str
    candidate_index: int
