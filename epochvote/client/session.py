# epochvote/client/session.py
from typing import List, Optional

from pydantic import BaseModel, Field

from epochvote.models.proposal_model import Proposal


class LedgerSnapshot(BaseModel):
    account: Optional[str] = None
    epoch: Optional[int] = None
    proposals: List[Proposal] = Field(default_factory=list)
    has_voted: bool = False
    is_owner: bool = False

    def with_vote(self, index: int) -> "LedgerSnapshot":
        """Provisional view of this snapshot with the caller's vote counted."""
        projected = self.model_copy(deep=True)
        if 0 <= index < len(projected.proposals):
            projected.proposals[index].vote_count += 1
        projected.has_voted = True
        return projected

    def with_reset(self) -> "LedgerSnapshot":
        projected = self.model_copy(deep=True)
        for proposal in projected.proposals:
            proposal.vote_count = 0
        projected.has_voted = False
        return projected


class Session(BaseModel):
    """Client-only state for one connected UI; never persisted."""
    pending_operation: Optional[str] = None
    pending_tx_hash: Optional[str] = None
    optimistic_state: Optional[LedgerSnapshot] = None
    confirmed_state: LedgerSnapshot = Field(default_factory=LedgerSnapshot)
    message: Optional[str] = None
    is_error: bool = False


class UiState(BaseModel):
    """Everything the UI renders. Derived from the session, never edited by the UI."""
    proposals: List[Proposal]
    has_voted: bool
    is_owner: bool
    message: Optional[str] = None
    is_error: bool = False
    pending_operation: Optional[str] = None
    controls_disabled: bool = False
