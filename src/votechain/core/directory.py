"""Directorio de votaciones: listados, creación y sesiones por votación.

Voting directory: listings, creation, and one session per listed voting.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

import structlog

from ..errors import VotingCreationError, describe_write_failure
from ..ports import LedgerReader, LedgerWriter
from .creation import CreationForm
from .session import Clock, VotingSession

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VotingListing:
    """Listado de votaciones, más recientes primero.

    English: Voting listing, newest first.
    """

    votings: Tuple[str, ...] = ()
    loading: bool = True
    connected: bool = True
    error: Optional[str] = None

    @property
    def count(self) -> Optional[int]:
        if self.loading or not self.connected:
            return None
        return len(self.votings)


def _newest_first(addresses: Sequence[str]) -> Tuple[str, ...]:
    return tuple(reversed(list(addresses)))


class VotingDirectory:
    """Listados de votaciones y orquestación de la creación.

    English:
        Keeps the "all votings" and "my votings" listings, refetches them
        after a successful creation, and owns one independent
        ``VotingSession`` per listed voting. Listing reads that were
        superseded by a newer refresh are dropped.
    """

    def __init__(
        self,
        reader: LedgerReader,
        writer: LedgerWriter,
        *,
        identity: Optional[str] = None,
        clock: Optional[Clock] = None,
        redact_logs: bool = False,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._redact_logs = redact_logs
        self._identity = identity
        self._clock = clock
        self._all_generation = 0
        self._mine_generation = 0
        self.all_votings = VotingListing()
        self.my_votings = VotingListing(connected=identity is not None)
        self.creating = False
        self._sessions: Dict[str, VotingSession] = {}

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def sessions(self) -> Dict[str, VotingSession]:
        return dict(self._sessions)

    def set_identity(self, identity: Optional[str]) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        self._mine_generation += 1
        self.my_votings = VotingListing(connected=identity is not None)
        for session in self._sessions.values():
            session.set_identity(identity)

    async def refresh_all(self) -> VotingListing:
        self._all_generation += 1
        generation = self._all_generation
        try:
            addresses = await self._reader.list_all_votings()
        except Exception as exc:  # noqa: BLE001
            logger.warning("listing_read_failed", listing="all", reason=str(exc))
            if generation == self._all_generation:
                self.all_votings = VotingListing(
                    votings=self.all_votings.votings,
                    loading=False,
                    error=str(exc),
                )
            return self.all_votings
        if generation != self._all_generation:
            logger.debug("listing_stale_dropped", listing="all")
            return self.all_votings
        self.all_votings = VotingListing(votings=_newest_first(addresses), loading=False)
        return self.all_votings

    async def refresh_mine(self) -> VotingListing:
        """Relee las votaciones creadas por la identidad actual.

        English: Re-read the votings created by the current identity. With
        no identity the listing is empty and marked disconnected.
        """
        self._mine_generation += 1
        generation = self._mine_generation
        identity = self._identity
        if not identity:
            self.my_votings = VotingListing(loading=False, connected=False)
            return self.my_votings
        try:
            addresses = await self._reader.list_votings_by_creator(identity)
        except Exception as exc:  # noqa: BLE001
            logger.warning("listing_read_failed", listing="mine", reason=str(exc))
            if generation == self._mine_generation:
                self.my_votings = VotingListing(
                    votings=self.my_votings.votings,
                    loading=False,
                    error=str(exc),
                )
            return self.my_votings
        if generation != self._mine_generation or identity != self._identity:
            logger.debug("listing_stale_dropped", listing="mine")
            return self.my_votings
        self.my_votings = VotingListing(votings=_newest_first(addresses), loading=False)
        return self.my_votings

    async def create_voting(self, form: CreationForm) -> str:
        """Valida el formulario, crea la votación y relee los listados.

        English:
            Validate the form, create the voting through the write port and
            refetch both listings. On failure the form keeps its input and
            records the message.
        """
        payload = form.to_payload()
        if self.creating:
            raise VotingCreationError("A voting is already being created")
        self.creating = True
        try:
            address = await self._writer.create_voting(
                payload.title,
                list(payload.candidate_names),
                payload.start_time,
                payload.end_time,
            )
        except Exception as exc:  # noqa: BLE001
            message = describe_write_failure(exc)
            form.error = message
            logger.warning("voting_creation_failed", title=payload.title, reason=message)
            raise VotingCreationError(message, cause=exc) from exc
        finally:
            self.creating = False

        logger.info(
            "voting_created",
            voting=address,
            title=payload.title,
            candidates=len(payload.candidate_names),
        )
        form.reset()
        await asyncio.gather(self.refresh_all(), self.refresh_mine())
        return address

    def session_for(self, address: str) -> VotingSession:
        """Devuelve (o crea) la sesión independiente de una votación.

        English: Return (or create) the independent session of a voting.
        """
        session = self._sessions.get(address)
        if session is None:
            session = VotingSession(
                self._reader,
                self._writer,
                identity=self._identity,
                clock=self._clock,
                redact_logs=self._redact_logs,
            )
            session.set_subject(address)
            self._sessions[address] = session
        return session

    async def sync_sessions(self, addresses: Optional[Iterable[str]] = None) -> Dict[str, VotingSession]:
        """Abre sesiones para las votaciones listadas y cierra las demás.

        English: Open sessions for listed votings and close the rest.
        """
        if addresses is None:
            wanted = list(self.all_votings.votings) + [
                address for address in self.my_votings.votings
                if address not in self.all_votings.votings
            ]
        else:
            wanted = list(addresses)
        stale = [address for address in self._sessions if address not in wanted]
        for address in stale:
            await self._sessions.pop(address).close()
        for address in wanted:
            self.session_for(address)
        return self.sessions

    async def wait_idle(self) -> None:
        await asyncio.gather(*(session.wait_idle() for session in self._sessions.values()))

    async def close(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        await asyncio.gather(*(session.close() for session in sessions))
