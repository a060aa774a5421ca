"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votechain/core/aggregator.py`.
Agregador de candidatos: lee cada índice de forma independiente, reordena
por índice y publica la lista solo si el token de la pasada sigue vigente.

Componentes detectados:
  - CancellationToken
  - AggregationState
  - fetch_candidates
  - CandidateAggregator

Notas:
- Una lectura fallida invalida toda la pasada; no hay reintento interno.
- Un resultado de otra votación nunca se publica sobre el sujeto actual.

======================== ENGLISH ========================
File: `src/votechain/core/aggregator.py`.
Candidate aggregator: reads every index independently, re-orders by index and
publishes the list only while the pass token is still live.

Detected components:
  - CancellationToken
  - AggregationState
  - fetch_candidates
  - CandidateAggregator

Notes:
- One failed read fails the whole pass; there is no internal retry.
- A result for another voting is never published over the current subject.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog

from ..errors import AggregationError
from ..ports import LedgerReader
from .models import Candidate

logger = structlog.get_logger(__name__)


class CancellationToken:
    """Token cooperativo asociado a un sujeto.

    English: Cooperative cancellation token bound to one subject.
    """

    def __init__(self, subject: str) -> None:
        self.subject = subject
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def is_live_for(self, subject: Optional[str]) -> bool:
        return not self._cancelled and self.subject == subject


class AggregationState(str, Enum):
    """Estados de la agregación."""

    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


async def _read_candidate(reader: LedgerReader, subject: str, index: int) -> Candidate:
    try:
        name, vote_count = await reader.get_candidate(subject, index)
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise AggregationError(subject, index, exc) from exc
    return Candidate(index=index, name=str(name), vote_count=int(vote_count))


async def fetch_candidates(
    reader: LedgerReader,
    token: CancellationToken,
    count: int,
) -> Optional[Tuple[Candidate, ...]]:
    """Lee ``count`` candidatos en paralelo y los ordena por índice.

    Las lecturas se emiten en orden de índice y pueden completar en cualquier
    orden. Devuelve ``None`` si el token se cancela antes de terminar.

    English:
        Read ``count`` candidates concurrently and order them by index.
        Returns ``None`` when the token is cancelled mid-pass; raises
        ``AggregationError`` when any read fails, after cancelling the rest.
    """
    if count <= 0:
        return ()

    tasks: List[asyncio.Task] = [
        asyncio.ensure_future(_read_candidate(reader, token.subject, index))
        for index in range(count)
    ]
    collected: Dict[int, Candidate] = {}
    try:
        for finished in asyncio.as_completed(tasks):
            candidate = await finished
            if token.cancelled:
                return None
            collected[candidate.index] = candidate
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    return tuple(collected[index] for index in range(count))


class CandidateAggregator:
    """Mantiene la lista de candidatos del sujeto actual.

    Cada pasada usa un token nuevo; cambiar de sujeto cancela la pasada
    anterior. Reiniciar el mismo sujeto con una pasada en curso encola una
    única pasada de seguimiento en lugar de correr dos a la vez.

    English:
        Holds the candidate list of the current subject. Each pass owns a new
        token; switching subjects cancels the previous pass. Re-triggering
        the same subject while a pass is in flight queues one follow-up pass
        instead of running two concurrently.
    """

    def __init__(self, reader: LedgerReader) -> None:
        self._reader = reader
        self._subject: Optional[str] = None
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._queued_count: Optional[int] = None
        self._candidates: Tuple[Candidate, ...] = ()
        self._published_subject: Optional[str] = None
        self._state = AggregationState.LOADING
        self._error: Optional[AggregationError] = None
        self.passes_started = 0

    @property
    def subject(self) -> Optional[str]:
        return self._subject

    @property
    def candidates(self) -> Tuple[Candidate, ...]:
        return self._candidates

    @property
    def published_subject(self) -> Optional[str]:
        return self._published_subject

    @property
    def state(self) -> AggregationState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is AggregationState.LOADING

    @property
    def error(self) -> Optional[AggregationError]:
        return self._error

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def reset(self, subject: Optional[str]) -> None:
        """Cancela todo y apunta a un sujeto nuevo sin candidatos.

        English: Cancel everything and point at a new, empty subject.
        """
        self.cancel()
        self._subject = subject
        self._candidates = ()
        self._published_subject = None
        self._state = AggregationState.LOADING
        self._error = None

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._queued_count = None

    async def close(self) -> None:
        """Cancela la pasada en curso y espera a que termine.

        English: Cancel the running pass and wait until it has finished.
        """
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def start(self, subject: str, count: Optional[int]) -> Optional[asyncio.Task]:
        """Inicia una pasada para ``subject`` con ``count`` candidatos.

        English: Start a pass for ``subject``. An unresolved count keeps the
        aggregator loading; a zero count publishes an empty list at once.
        """
        if subject != self._subject:
            self.reset(subject)
        if count is None:
            return None
        if self.in_flight:
            self._queued_count = count
            logger.debug("aggregation_queued", subject=subject, count=count)
            return self._task

        token = CancellationToken(subject)
        self._token = token
        self.passes_started += 1
        if count == 0:
            self._publish(token, ())
            return None

        logger.info("aggregation_started", subject=subject, count=count)
        self._task = asyncio.ensure_future(self._run(token, count))
        return self._task

    async def wait(self) -> None:
        """Espera a que terminen la pasada actual y las encoladas.

        English: Wait for the current pass and any queued follow-up.
        """
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    async def _run(self, token: CancellationToken, count: int) -> None:
        try:
            candidates = await fetch_candidates(self._reader, token, count)
        except AggregationError as exc:
            if token.is_live_for(self._subject):
                self._error = exc
                self._state = AggregationState.FAILED
                logger.warning(
                    "aggregation_failed",
                    subject=token.subject,
                    index=exc.index,
                    reason=str(exc.cause),
                )
            else:
                logger.debug("aggregation_stale_failure_dropped", subject=token.subject)
        else:
            if candidates is not None:
                self._publish(token, candidates)
        finally:
            if token is self._token:
                self._task = None
                queued = self._queued_count
                self._queued_count = None
                if queued is not None and not token.cancelled:
                    self.start(token.subject, queued)

    def _publish(self, token: CancellationToken, candidates: Tuple[Candidate, ...]) -> bool:
        if not token.is_live_for(self._subject):
            logger.debug(
                "aggregation_stale_dropped",
                subject=token.subject,
                current=self._subject,
            )
            return False
        self._candidates = candidates
        self._published_subject = token.subject
        self._state = AggregationState.READY
        self._error = None
        logger.info(
            "aggregation_published",
            subject=token.subject,
            count=len(candidates),
        )
        return True
