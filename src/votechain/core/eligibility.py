"""Elegibilidad de voto y controlador de envío.

Vote eligibility and submission controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from ..errors import SelectionError, VoteSubmissionError, describe_write_failure
from ..ports import LedgerWriter
from .models import VoteIntent, VotingStatus

logger = structlog.get_logger(__name__)


class VoteAction(str, Enum):
    """Acción disponible para la identidad actual."""

    CAST_VOTE = "cast_vote"
    VOTED = "voted"
    CONNECT_WALLET = "connect_wallet"
    NONE = "none"


@dataclass(frozen=True)
class Eligibility:
    """Entradas que deciden si la identidad puede seleccionar y votar.

    ``has_voted`` sin resolver no cuenta como ``False``.

    English:
        Inputs deciding whether the identity may select and vote. An
        unresolved ``has_voted`` does not count as ``False``.
    """

    status: VotingStatus
    identity: Optional[str]
    has_voted: Optional[bool]

    @property
    def eligible(self) -> bool:
        return (
            self.status is VotingStatus.ACTIVE
            and bool(self.identity)
            and self.has_voted is False
        )

    @property
    def reason(self) -> Optional[str]:
        if self.status is not VotingStatus.ACTIVE:
            return f"Voting is {self.status.value}"
        if not self.identity:
            return "Connect wallet to vote"
        if self.has_voted:
            return "Already voted"
        if self.has_voted is None:
            return "Checking participation"
        return None


def vote_action(eligibility: Eligibility) -> VoteAction:
    if eligibility.eligible:
        return VoteAction.CAST_VOTE
    if eligibility.has_voted:
        return VoteAction.VOTED
    if eligibility.status is VotingStatus.ACTIVE and not eligibility.identity:
        return VoteAction.CONNECT_WALLET
    return VoteAction.NONE


class VoteController:
    """Gestiona la selección local y el envío del voto.

    English:
        Manages the local selection and vote submission. The controller never
        updates vote counts locally; callers refetch after a successful vote.
    """

    def __init__(self, writer: LedgerWriter) -> None:
        self._writer = writer
        self.selected_index: Optional[int] = None
        self.submitting = False
        self.error_message: Optional[str] = None
        self.last_intent: Optional[VoteIntent] = None

    def select(
        self,
        index: int,
        eligibility: Eligibility,
        candidate_count: Optional[int] = None,
    ) -> Optional[int]:
        """Selecciona (o deselecciona) un candidato.

        English: Select ``index``, or deselect it when already selected.
        Returns the new selection.
        """
        if not eligibility.eligible:
            self.clear()
            raise SelectionError(eligibility.reason or "Selection not allowed")
        if index < 0 or (candidate_count is not None and index >= candidate_count):
            raise SelectionError(f"Candidate {index} does not exist")
        self.selected_index = None if self.selected_index == index else index
        return self.selected_index

    def clear(self) -> None:
        self.selected_index = None

    def sync(self, eligibility: Eligibility) -> None:
        """Limpia la selección si se perdió la elegibilidad.

        English: Clear the selection when eligibility is lost.
        """
        if not eligibility.eligible and self.selected_index is not None:
            logger.info(
                "selection_cleared",
                status=eligibility.status.value,
                reason=eligibility.reason,
            )
            self.clear()

    def can_submit(self, eligibility: Eligibility) -> bool:
        return eligibility.eligible and self.selected_index is not None and not self.submitting

    async def submit(self, voting: str, eligibility: Eligibility) -> VoteIntent:
        """Envía el voto seleccionado a través del puerto de escritura.

        English:
            Send the selected vote through the write port. On failure the
            selection is kept so the user can retry.
        """
        self.sync(eligibility)
        if not eligibility.eligible:
            raise SelectionError(eligibility.reason or "Voting not allowed")
        if self.selected_index is None:
            raise SelectionError("Select a candidate first")
        if self.submitting:
            raise SelectionError("A vote is already being submitted")

        intent = VoteIntent(voting=voting, candidate_index=self.selected_index)
        self.submitting = True
        self.error_message = None
        try:
            await self._writer.cast_vote(intent.voting, intent.candidate_index)
        except Exception as exc:  # noqa: BLE001
            message = describe_write_failure(exc)
            self.error_message = message
            logger.warning(
                "vote_failed",
                voting=voting,
                candidate_index=intent.candidate_index,
                reason=message,
            )
            raise VoteSubmissionError(message, cause=exc) from exc
        finally:
            self.submitting = False

        self.last_intent = intent
        logger.info("vote_submitted", voting=voting, candidate_index=intent.candidate_index)
        return intent
