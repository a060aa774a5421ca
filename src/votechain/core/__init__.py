"""Motor de derivación de estado y agregación de votaciones.

Voting state derivation and aggregation engine.
"""

from .aggregator import AggregationState, CancellationToken, CandidateAggregator, fetch_candidates
from .creation import CreationForm, CreationPayload, validate_creation
from .directory import VotingDirectory, VotingListing
from .eligibility import Eligibility, VoteAction, VoteController, vote_action
from .models import Candidate, VoteIntent, VotingFields, VotingStatus
from .session import VotingSession, VotingView
from .status import derive_status, status_of
from .tally import Tally, TallyRow, build_tally

__all__ = [
    "AggregationState",
    "CancellationToken",
    "Candidate",
    "CandidateAggregator",
    "CreationForm",
    "CreationPayload",
    "Eligibility",
    "Tally",
    "TallyRow",
    "VoteAction",
    "VoteController",
    "VoteIntent",
    "VotingDirectory",
    "VotingFields",
    "VotingListing",
    "VotingSession",
    "VotingStatus",
    "VotingView",
    "build_tally",
    "derive_status",
    "fetch_candidates",
    "status_of",
    "validate_creation",
    "vote_action",
]
