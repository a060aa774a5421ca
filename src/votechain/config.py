"""Configuración de VoteChain desde entorno, .env o YAML.

VoteChain configuration from the environment, .env files or YAML.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from dotenv import load_dotenv
from eth_utils import is_address
from pydantic import AnyUrl, Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .ledger.memory import InMemoryLedger
from .ports import LedgerReader, LedgerWriter

logger = structlog.get_logger(__name__)

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")
# Seguridad: cargar variables sensibles desde .env y .env.local. / Security: load sensitive vars from .env/.env.local.
load_dotenv(_ENV_PATH, override=False)
load_dotenv(_ENV_LOCAL_PATH, override=False)

SEPOLIA_CHAIN_ID = 11155111
_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LedgerBackend(str, Enum):
    """Backends de ledger soportados."""

    MEMORY = "memory"
    WEB3 = "web3"


class VoteChainSettings(BaseSettings):
    """Variables de entorno y archivo .env para VoteChain.

    English: Environment variables and .env file for VoteChain.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    LEDGER_BACKEND: LedgerBackend = LedgerBackend.MEMORY
    RPC_URL: Optional[AnyUrl] = None
    CHAIN_ID: int = Field(default=SEPOLIA_CHAIN_ID, ge=1)
    FACTORY_ADDRESS: Optional[str] = None
    PRIVATE_KEY: Optional[SecretStr] = None
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_DIR: Optional[Path] = None
    LOG_REDACT_IDENTIFIERS: bool = False
    STATUS_REFRESH_SECONDS: int = Field(default=30, ge=1, le=60)
    READ_RETRIES: int = Field(default=3, ge=1, le=10)
    RECEIPT_TIMEOUT_SECONDS: int = Field(default=120, ge=1)

    @field_validator("LOG_LEVEL")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _VALID_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_VALID_LEVELS)}")
        return level

    @field_validator("FACTORY_ADDRESS")
    @classmethod
    def _validate_factory(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        cleaned = value.strip()
        if not is_address(cleaned):
            raise ValueError(f"FACTORY_ADDRESS is not a valid address: {cleaned}")
        return cleaned

    @model_validator(mode="after")
    def _web3_requirements(self) -> "VoteChainSettings":
        if self.LEDGER_BACKEND is LedgerBackend.WEB3:
            if self.RPC_URL is None:
                raise ValueError("RPC_URL is required for the web3 backend")
            if self.FACTORY_ADDRESS is None:
                raise ValueError("FACTORY_ADDRESS is required for the web3 backend")
        return self


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Carga un mapa YAML o lanza un error orientado al usuario.

    English: Load a YAML mapping or raise a user-facing error.
    """
    if not path.exists():
        raise ConfigError(f"Missing {path.as_posix()}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path.name} has YAML syntax errors") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name} must be a YAML mapping")
    return raw


def load_settings(config_path: Optional[Path] = None) -> VoteChainSettings:
    """Carga y valida la configuración, fallando con detalle.

    Con ``config_path`` se lee YAML (claves en minúsculas); la llave privada
    se toma siempre del entorno y se ignora si aparece en el YAML.

    English:
        Load and validate configuration. With ``config_path`` a YAML file is
        read (lower-case keys); the private key always comes from the
        environment and is ignored when found in YAML.
    """
    try:
        if config_path is None:
            return VoteChainSettings()
        raw = _load_yaml_mapping(config_path)
        payload = {str(key).upper(): value for key, value in raw.items()}
        if payload.pop("PRIVATE_KEY", None):
            logger.warning("private_key_in_yaml_ignored", path=str(config_path))
        env_key = os.getenv("PRIVATE_KEY", "").strip()
        if env_key:
            payload["PRIVATE_KEY"] = env_key
        return VoteChainSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


@dataclass(frozen=True)
class LedgerPorts:
    """Puertos construidos para el backend configurado.

    English: Ports built for the configured backend.
    """

    reader: LedgerReader
    writer: LedgerWriter
    identity: Optional[str]


def build_ledger(settings: VoteChainSettings, identity: Optional[str] = None) -> LedgerPorts:
    """Construye los puertos del ledger según ``LEDGER_BACKEND``.

    English: Build the ledger ports for ``LEDGER_BACKEND``. The memory
    backend writes as ``identity``; the web3 backend signs with
    ``PRIVATE_KEY`` and reports its address as the identity.
    """
    if settings.LEDGER_BACKEND is LedgerBackend.MEMORY:
        ledger = InMemoryLedger()
        return LedgerPorts(reader=ledger, writer=ledger.wallet(identity), identity=identity)

    from .ledger.web3_ledger import Web3Ledger

    private_key = settings.PRIVATE_KEY.get_secret_value() if settings.PRIVATE_KEY else None
    web3_ledger = Web3Ledger(
        str(settings.RPC_URL),
        settings.FACTORY_ADDRESS or "",
        private_key=private_key,
        chain_id=settings.CHAIN_ID,
        read_retries=settings.READ_RETRIES,
        receipt_timeout=float(settings.RECEIPT_TIMEOUT_SECONDS),
    )
    return LedgerPorts(
        reader=web3_ledger,
        writer=web3_ledger,
        identity=web3_ledger.current_identity(),
    )
