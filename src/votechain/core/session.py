"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votechain/core/session.py`.
Sesión de observación de una votación: lecturas independientes de campos,
agregación de candidatos, elegibilidad, relectura tras mutaciones y cambio
de sujeto con cancelación de lecturas pendientes.

Componentes detectados:
  - VotingView
  - VotingSession

Notas:
- Toda vista se recalcula desde los campos crudos; nada derivado se guarda.
- Las lecturas publican solo si su token sigue vigente para el sujeto.

======================== ENGLISH ========================
File: `src/votechain/core/session.py`.
Observation session for one voting: independent field reads, candidate
aggregation, eligibility, refetch after mutations, and subject switching with
cancellation of pending reads.

Detected components:
  - VotingView
  - VotingSession

Notes:
- Every view is recomputed from raw fields; nothing derived is stored.
- Reads publish only while their token is live for the subject.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import structlog

from ..logging import bind_context
from ..ports import IdentityProvider, LedgerReader, LedgerWriter
from ..timeutils import format_time_remaining, format_timestamp, now_seconds, shorten_identifier
from .aggregator import CancellationToken, CandidateAggregator
from .eligibility import Eligibility, VoteAction, VoteController, vote_action
from .models import VoteIntent, VotingFields, VotingStatus
from .status import status_of
from .tally import Tally, build_tally

logger = structlog.get_logger(__name__)

Clock = Callable[[], int]


@dataclass(frozen=True)
class VotingView:
    """Instantánea derivada de una votación en un instante.

    English: Derived snapshot of one voting at one instant. Discarded after
    use; build a new one on every observation.
    """

    address: str
    fields: VotingFields
    status: VotingStatus
    tally: Tally
    candidates_loading: bool
    aggregation_error: Optional[str]
    eligibility: Eligibility
    selected_index: Optional[int]
    action: VoteAction
    is_creator: bool
    submitting: bool
    error_message: Optional[str]
    starts_at: str
    ends_at: str
    remaining: Optional[str]

    @property
    def short_address(self) -> str:
        return shorten_identifier(self.address)

    @property
    def can_select(self) -> bool:
        return self.eligibility.eligible

    @property
    def can_submit(self) -> bool:
        return self.can_select and self.selected_index is not None and not self.submitting


class VotingSession:
    """Observa un sujeto (votación) a la vez.

    English:
        Observes one subject at a time. Switching the subject cancels every
        pending read of the previous one. A refresh supersedes the pending
        field pass; candidate passes for one subject never overlap.
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
        self._clock = clock or now_seconds
        self._identity = identity
        self._redact_logs = redact_logs
        self._subject: Optional[str] = None
        self._fields: Optional[VotingFields] = None
        self._token: Optional[CancellationToken] = None
        self._identity_token: Optional[CancellationToken] = None
        self._tasks: Set[asyncio.Task] = set()
        self._pass_tasks: Set[asyncio.Task] = set()
        self.aggregator = CandidateAggregator(reader)
        self.controller = VoteController(writer)
        self._log = logger

    @property
    def subject(self) -> Optional[str]:
        return self._subject

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def fields(self) -> Optional[VotingFields]:
        return self._fields

    def set_subject(self, address: Optional[str]) -> None:
        """Cambia la votación observada.

        English: Switch the observed voting, discarding everything that
        belongs to the previous subject.
        """
        if address == self._subject:
            return
        self._cancel_reads()
        self.aggregator.reset(address)
        self.controller.clear()
        self.controller.error_message = None
        self._subject = address
        self._fields = VotingFields(address=address) if address else None
        self._log = bind_context(logger, voting=address, identity=self._identity, redact=self._redact_logs)
        if address:
            self._log.info("subject_changed")
            self._start_pass()

    def set_identity(self, identity: Optional[str]) -> None:
        """Cambia la identidad y vuelve a leer ``has_voted``.

        English: Change the identity and re-read ``has_voted``.
        """
        if identity == self._identity:
            return
        self._identity = identity
        self._log = bind_context(logger, voting=self._subject, identity=identity, redact=self._redact_logs)
        self.controller.clear()
        if self._fields is not None:
            self._fields = replace(self._fields, has_voted=None)
        self._start_has_voted_read()

    def sync_identity(self, provider: IdentityProvider) -> None:
        self.set_identity(provider.current_identity())

    def refresh(self) -> None:
        """Relee campos y candidatos del sujeto actual.

        English: Re-read the current subject's fields and candidates. A
        pending field pass is superseded, so a hung read never blocks the
        refetch.
        """
        if not self._subject:
            return
        if any(not task.done() for task in self._pass_tasks):
            self._log.debug("read_pass_superseded")
        self._start_pass()

    def eligibility(self, now: Optional[int] = None) -> Eligibility:
        fields = self._fields or VotingFields(address="")
        current = self._clock() if now is None else now
        return Eligibility(
            status=status_of(fields, current),
            identity=self._identity,
            has_voted=fields.has_voted if self._identity else None,
        )

    def select(self, index: int, now: Optional[int] = None) -> Optional[int]:
        count = self._fields.candidates_count if self._fields else None
        return self.controller.select(index, self.eligibility(now), count)

    async def cast_vote(self, now: Optional[int] = None) -> VoteIntent:
        """Envía el voto seleccionado y relee el estado autoritativo.

        English: Submit the selected vote, then refetch the authoritative
        state. Vote counts are never incremented locally.
        """
        if not self._subject:
            raise ValueError("No voting selected")
        intent = await self.controller.submit(self._subject, self.eligibility(now))
        if intent.voting == self._subject:
            self.refresh()
        return intent

    def view(self, now: Optional[int] = None) -> VotingView:
        """Recalcula la vista derivada y sincroniza la selección.

        English: Recompute the derived view; as a side effect the selection
        is cleared when eligibility has been lost.
        """
        if self._fields is None:
            raise ValueError("No voting selected")
        current = self._clock() if now is None else now
        fields = self._fields
        eligibility = self.eligibility(current)
        self.controller.sync(eligibility)
        status = eligibility.status
        error = self.aggregator.error
        return VotingView(
            address=fields.address,
            fields=fields,
            status=status,
            tally=build_tally(self.aggregator.candidates, status),
            candidates_loading=self.aggregator.loading,
            aggregation_error=str(error) if error else None,
            eligibility=eligibility,
            selected_index=self.controller.selected_index,
            action=vote_action(eligibility),
            is_creator=fields.is_creator(self._identity),
            submitting=self.controller.submitting,
            error_message=self.controller.error_message,
            starts_at=format_timestamp(fields.start_time),
            ends_at=format_timestamp(fields.end_time),
            remaining=(
                format_time_remaining(fields.end_time, current)
                if status is VotingStatus.ACTIVE
                else None
            ),
        )

    async def watch(
        self,
        interval: float,
        stop: asyncio.Event,
        on_tick: Optional[Callable[[VotingView], Any]] = None,
    ) -> int:
        """Recalcula la vista cada ``interval`` segundos hasta ``stop``.

        English: Re-derive the view every ``interval`` seconds until ``stop``
        is set, so an active voting turns ended without user action.
        """
        ticks = 0
        while not stop.is_set():
            if self._fields is not None:
                view = self.view()
                ticks += 1
                if on_tick is not None:
                    on_tick(view)
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
        return ticks

    async def wait_idle(self) -> None:
        """Espera a que no queden lecturas ni pasadas pendientes.

        English: Wait until no reads or passes are pending.
        """
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if pending:
                await asyncio.wait(pending)
                continue
            if self.aggregator.in_flight:
                await self.aggregator.wait()
                continue
            return

    async def close(self) -> None:
        tasks = list(self._tasks)
        self._cancel_reads()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.aggregator.close()

    def _cancel_reads(self) -> None:
        for token in (self._token, self._identity_token):
            if token is not None:
                token.cancel()
        self._token = None
        self._identity_token = None
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._pass_tasks = set()

    def _spawn(self, coro: Awaitable[None], *, pass_task: bool = False) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if pass_task:
            self._pass_tasks.add(task)
        return task

    def _field_readers(self, subject: str) -> Dict[str, Callable[[], Awaitable[Any]]]:
        reader = self._reader
        return {
            "title": lambda: reader.get_title(subject),
            "start_time": lambda: reader.get_start_time(subject),
            "end_time": lambda: reader.get_end_time(subject),
            "finalized": lambda: reader.get_finalized(subject),
            "creator": lambda: reader.get_creator(subject),
            "candidates_count": lambda: reader.get_candidates_count(subject),
        }

    def _start_pass(self) -> None:
        subject = self._subject
        if not subject:
            return
        if self._token is not None:
            self._token.cancel()
        for task in self._pass_tasks:
            if not task.done():
                task.cancel()
        token = CancellationToken(subject)
        self._token = token
        self._pass_tasks = set()
        self._log.debug("read_pass_started")
        for name, read in self._field_readers(subject).items():
            self._spawn(self._read_field(token, name, read), pass_task=True)
        self._start_has_voted_read(pass_task=True)

    def _start_has_voted_read(self, *, pass_task: bool = False) -> None:
        if self._identity_token is not None:
            self._identity_token.cancel()
            self._identity_token = None
        if not self._subject or not self._identity:
            return
        token = CancellationToken(self._subject)
        self._identity_token = token
        self._spawn(self._read_has_voted(token, self._identity), pass_task=pass_task)

    async def _read_field(
        self,
        token: CancellationToken,
        name: str,
        read: Callable[[], Awaitable[Any]],
    ) -> None:
        try:
            value = await read()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if token.is_live_for(self._subject):
                self._log.warning("field_read_failed", field=name, reason=str(exc))
            return
        if not token.is_live_for(self._subject) or self._fields is None:
            self._log.debug("field_read_stale_dropped", field=name, subject=token.subject)
            return
        self._fields = replace(self._fields, **{name: _coerce(name, value)})
        if name == "candidates_count":
            self.aggregator.start(token.subject, self._fields.candidates_count)

    async def _read_has_voted(self, token: CancellationToken, identity: str) -> None:
        try:
            value = await self._reader.get_has_voted(token.subject, identity)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if token.is_live_for(self._subject):
                self._log.warning("field_read_failed", field="has_voted", reason=str(exc))
            return
        if (
            not token.is_live_for(self._subject)
            or identity != self._identity
            or self._fields is None
        ):
            self._log.debug("field_read_stale_dropped", field="has_voted", subject=token.subject)
            return
        self._fields = replace(self._fields, has_voted=bool(value))
        self.controller.sync(self.eligibility())


def _coerce(name: str, value: Any) -> Any:
    if name in {"start_time", "end_time", "candidates_count"}:
        return int(value)
    if name == "finalized":
        return bool(value)
    return str(value)
