"""Jerarquía de errores del motor VoteChain.

Error hierarchy for the VoteChain engine.
"""

from __future__ import annotations

from typing import Optional

GENERIC_WRITE_FAILURE = "Transaction failed"


class VoteChainError(Exception):
    """Error base del motor.

    English: Base engine error.
    """


class ConfigError(VoteChainError, ValueError):
    """Configuración inválida o incompleta.

    English: Invalid or incomplete configuration.
    """


class SelectionError(VoteChainError):
    """Selección de candidato no permitida en el estado actual.

    English: Candidate selection not allowed in the current state.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class CreationValidationError(VoteChainError):
    """La votación propuesta no pasa la validación.

    English: The proposed voting fails validation.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class VoteSubmissionError(VoteChainError):
    """Falló el envío del voto; el mensaje es apto para el usuario.

    English: Vote submission failed; the message is user-facing.
    """

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class VotingCreationError(VoteChainError):
    """El puerto de escritura rechazó la nueva votación.

    English: The write port rejected the new voting.
    """

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class AggregationError(VoteChainError):
    """Falló la lectura de un candidato durante una pasada de agregación.

    English: A candidate read failed during an aggregation pass.
    """

    def __init__(self, subject: str, index: int, cause: BaseException) -> None:
        super().__init__(f"Candidate {index} of {subject} could not be read: {cause}")
        self.subject = subject
        self.index = index
        self.cause = cause


def describe_write_failure(exc: BaseException) -> str:
    """Devuelve el mensaje de un fallo de escritura o el genérico.

    English: Return the write failure message verbatim, else the generic one.
    """
    message = str(exc).strip()
    return message or GENERIC_WRITE_FAILURE
