"""Puertos de lectura, escritura e identidad hacia el ledger.

Read, write and identity ports towards the ledger. The engine never talks to
the ledger except through these protocols.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable


class LedgerError(Exception):
    """Error general de un puerto del ledger.

    English: General ledger port error.
    """


class LedgerReadError(LedgerError):
    """Falló una lectura del ledger.

    English: A ledger read failed.
    """


class LedgerWriteError(LedgerError):
    """La escritura fue rechazada, revertida o no llegó al ledger.

    English: The write was rejected, reverted, or never reached the ledger.
    """


@runtime_checkable
class LedgerReader(Protocol):
    """Lecturas asíncronas independientes sobre votaciones.

    English: Independent asynchronous reads over votings.
    """

    async def get_title(self, voting: str) -> str: ...

    async def get_start_time(self, voting: str) -> int: ...

    async def get_end_time(self, voting: str) -> int: ...

    async def get_finalized(self, voting: str) -> bool: ...

    async def get_candidates_count(self, voting: str) -> int: ...

    async def get_candidate(self, voting: str, index: int) -> Tuple[str, int]: ...

    async def get_has_voted(self, voting: str, identity: str) -> bool: ...

    async def get_creator(self, voting: str) -> str: ...

    async def list_votings_by_creator(self, identity: str) -> Sequence[str]: ...

    async def list_all_votings(self) -> Sequence[str]: ...


@runtime_checkable
class LedgerWriter(Protocol):
    """Escrituras asíncronas que pueden fallar.

    English: Asynchronous writes that may fail.
    """

    async def create_voting(
        self,
        title: str,
        candidate_names: Sequence[str],
        start_time: int,
        end_time: int,
    ) -> str: ...

    async def cast_vote(self, voting: str, candidate_index: int) -> None: ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Fuente de la identidad actual del llamante.

    English: Source of the current caller identity.
    """

    def current_identity(self) -> Optional[str]: ...


class StaticIdentity:
    """Identidad fija, útil para sesiones sintéticas y pruebas.

    English: Fixed identity for synthetic sessions and tests.
    """

    def __init__(self, identity: Optional[str] = None) -> None:
        self.identity = identity

    def current_identity(self) -> Optional[str]:
        return self.identity


def same_identity(left: Optional[str], right: Optional[str]) -> bool:
    """Compara identidades sin distinguir mayúsculas.

    English: Compare identities case-insensitively; absent never matches.
    """
    if not left or not right:
        return False
    return left.lower() == right.lower()
