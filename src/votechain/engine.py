"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votechain/engine.py`.
Raíz de composición: a partir de la configuración prepara el logging, los
puertos del ledger y el directorio de votaciones, y vigila cada votación con
el intervalo configurado.

Componentes detectados:
  - VoteChainEngine
  - build_engine

======================== ENGLISH ========================
File: `src/votechain/engine.py`.
Composition root: from the settings it prepares logging, the ledger ports and
the voting directory, and watches each voting at the configured interval.

Detected components:
  - VoteChainEngine
  - build_engine
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from .config import LedgerPorts, VoteChainSettings, build_ledger, load_settings
from .core.directory import VotingDirectory
from .core.session import VotingView
from .logging import setup_logging

logger = structlog.get_logger(__name__)


@dataclass
class VoteChainEngine:
    """Puertos, directorio e intervalo de refresco ya cableados.

    English: Ports, directory and refresh interval wired from settings.
    """

    settings: VoteChainSettings
    ports: LedgerPorts
    directory: VotingDirectory

    @property
    def refresh_interval(self) -> float:
        return float(self.settings.STATUS_REFRESH_SECONDS)

    async def watch(
        self,
        address: str,
        stop: asyncio.Event,
        on_tick: Optional[Callable[[VotingView], Any]] = None,
    ) -> int:
        """Vigila una votación hasta ``stop`` con el intervalo configurado.

        English: Watch one voting until ``stop`` at the configured interval.
        """
        session = self.directory.session_for(address)
        return await session.watch(self.refresh_interval, stop, on_tick)

    async def close(self) -> None:
        await self.directory.close()


def build_engine(
    settings: Optional[VoteChainSettings] = None,
    identity: Optional[str] = None,
    *,
    configure_logging: bool = True,
) -> VoteChainEngine:
    """Construye el motor completo desde la configuración.

    English:
        Build the whole engine from settings. Logging is configured from
        ``LOG_LEVEL``, ``LOG_DIR`` and ``LOG_JSON`` unless
        ``configure_logging`` is false; ``LOG_REDACT_IDENTIFIERS`` reaches
        every session through the directory.
    """
    settings = settings or load_settings()
    if configure_logging:
        setup_logging(settings.LOG_LEVEL, settings.LOG_DIR, json_output=settings.LOG_JSON)
    ports = build_ledger(settings, identity)
    directory = VotingDirectory(
        ports.reader,
        ports.writer,
        identity=ports.identity,
        redact_logs=settings.LOG_REDACT_IDENTIFIERS,
    )
    logger.info(
        "engine_ready",
        backend=settings.LEDGER_BACKEND.value,
        refresh_seconds=settings.STATUS_REFRESH_SECONDS,
        redact=settings.LOG_REDACT_IDENTIFIERS,
    )
    return VoteChainEngine(settings=settings, ports=ports, directory=directory)
