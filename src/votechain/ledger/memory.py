"""Ledger en memoria con las reglas del contrato de votación.

In-process ledger implementing the voting contract rules. Used as the sandbox
backend and by the test-suite; reads yield to the event loop so that
concurrent observation behaves like a remote ledger.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

import structlog
from eth_utils import keccak, to_checksum_address

from ..ports import LedgerReadError, LedgerWriteError
from ..timeutils import now_seconds

logger = structlog.get_logger(__name__)

FailureKey = Tuple[str, str, Optional[int]]


@dataclass
class _VotingRecord:
    address: str
    title: str
    creator: str
    start_time: int
    end_time: int
    names: List[str]
    counts: List[int]
    voters: Set[str] = field(default_factory=set)
    finalized: bool = False


class InMemoryLedger:
    """Estado del ledger y puerto de lectura.

    English:
        Ledger state and read port. Writes go through ``wallet(identity)``,
        which signs as that identity. With ``record_reads`` every read is
        appended to ``read_calls``; otherwise nothing is kept.
    """

    def __init__(
        self,
        *,
        clock: Optional[Callable[[], int]] = None,
        read_delay: float = 0.0,
        record_reads: bool = False,
    ) -> None:
        self._clock = clock or now_seconds
        self.read_delay = read_delay
        self.record_reads = record_reads
        self._votings: Dict[str, _VotingRecord] = {}
        self._failures: Dict[FailureKey, BaseException] = {}
        self._nonce = 0
        self.read_calls: List[Tuple[str, str, Optional[int]]] = []

    def wallet(self, identity: Optional[str]) -> "InMemoryWallet":
        return InMemoryWallet(self, identity)

    def fail_reads(
        self,
        method: str,
        voting: str,
        index: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Programa un fallo persistente para una lectura concreta.

        English: Make a specific read fail until ``clear_failures``.
        """
        self._failures[(method, voting.lower(), index)] = error or LedgerReadError(
            f"{method} failed for {voting}"
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    # ------------------------------------------------------------------
    # Escrituras / Writes
    # ------------------------------------------------------------------

    def deploy(
        self,
        creator: str,
        title: str,
        candidate_names: Sequence[str],
        start_time: int,
        end_time: int,
    ) -> str:
        if start_time >= end_time:
            raise LedgerWriteError("Start time must be before end time")
        if len(candidate_names) < 2:
            raise LedgerWriteError("At least two candidates required")
        self._nonce += 1
        seed = f"{creator.lower()}:{self._nonce}".encode("utf-8")
        address = to_checksum_address(keccak(seed)[-20:])
        self._votings[address.lower()] = _VotingRecord(
            address=address,
            title=title,
            creator=creator,
            start_time=int(start_time),
            end_time=int(end_time),
            names=list(candidate_names),
            counts=[0] * len(candidate_names),
        )
        logger.info("ledger_voting_deployed", voting=address, creator=creator)
        return address

    def record_vote(self, voter: str, voting: str, candidate_index: int) -> None:
        record = self._get(voting, LedgerWriteError)
        now = self._clock()
        if record.finalized:
            raise LedgerWriteError("Voting is finalized")
        if now < record.start_time:
            raise LedgerWriteError("Voting has not started")
        if now > record.end_time:
            raise LedgerWriteError("Voting has ended")
        if voter.lower() in record.voters:
            raise LedgerWriteError("Already voted")
        if not 0 <= candidate_index < len(record.counts):
            raise LedgerWriteError("Invalid candidate")
        record.voters.add(voter.lower())
        record.counts[candidate_index] += 1

    def finalize(self, voting: str) -> None:
        self._get(voting, LedgerWriteError).finalized = True

    # ------------------------------------------------------------------
    # Lecturas / Reads
    # ------------------------------------------------------------------

    async def get_title(self, voting: str) -> str:
        return (await self._read("get_title", voting)).title

    async def get_start_time(self, voting: str) -> int:
        return (await self._read("get_start_time", voting)).start_time

    async def get_end_time(self, voting: str) -> int:
        return (await self._read("get_end_time", voting)).end_time

    async def get_finalized(self, voting: str) -> bool:
        return (await self._read("get_finalized", voting)).finalized

    async def get_candidates_count(self, voting: str) -> int:
        return len((await self._read("get_candidates_count", voting)).names)

    async def get_candidate(self, voting: str, index: int) -> Tuple[str, int]:
        record = await self._read("get_candidate", voting, index)
        if not 0 <= index < len(record.names):
            raise LedgerReadError(f"Candidate {index} out of range")
        return record.names[index], record.counts[index]

    async def get_has_voted(self, voting: str, identity: str) -> bool:
        return identity.lower() in (await self._read("get_has_voted", voting)).voters

    async def get_creator(self, voting: str) -> str:
        return (await self._read("get_creator", voting)).creator

    async def list_votings_by_creator(self, identity: str) -> List[str]:
        await self._pause()
        return [
            record.address
            for record in self._votings.values()
            if record.creator.lower() == identity.lower()
        ]

    async def list_all_votings(self) -> List[str]:
        await self._pause()
        return [record.address for record in self._votings.values()]

    async def _pause(self) -> None:
        await asyncio.sleep(self.read_delay)

    async def _read(self, method: str, voting: str, index: Optional[int] = None) -> _VotingRecord:
        if self.record_reads:
            self.read_calls.append((method, voting, index))
        await self._pause()
        failure = self._failures.get((method, voting.lower(), index))
        if failure is not None:
            raise failure
        return self._get(voting, LedgerReadError)

    def _get(self, voting: str, error: type) -> _VotingRecord:
        record = self._votings.get(voting.lower())
        if record is None:
            raise error(f"Unknown voting {voting}")
        return record


class InMemoryWallet:
    """Puerto de escritura que firma como una identidad.

    English: Write port acting as one identity.
    """

    def __init__(self, ledger: InMemoryLedger, identity: Optional[str]) -> None:
        self.ledger = ledger
        self.identity = identity

    def current_identity(self) -> Optional[str]:
        return self.identity

    def _signer(self) -> str:
        if not self.identity:
            raise LedgerWriteError("No signing key configured")
        return self.identity

    async def create_voting(
        self,
        title: str,
        candidate_names: Sequence[str],
        start_time: int,
        end_time: int,
    ) -> str:
        await asyncio.sleep(0)
        return self.ledger.deploy(self._signer(), title, candidate_names, start_time, end_time)

    async def cast_vote(self, voting: str, candidate_index: int) -> None:
        await asyncio.sleep(0)
        self.ledger.record_vote(self._signer(), voting, candidate_index)
        logger.info("ledger_vote_recorded", voting=voting, voter=self.identity)
