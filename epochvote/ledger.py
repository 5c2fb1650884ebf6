# epochvote/ledger.py
"""
Authoritative proposal / vote / authority state.

Voting rounds are identified by an epoch number. Each voter record only
stores the epoch in which that address last voted, so an address has voted
in the current round exactly when its stamp equals the current epoch.
Resetting the round bumps the epoch and zeroes the proposal counters; voter
records are never read or written by a reset, which keeps its cost tied to
the number of proposals rather than to the number of addresses that ever
voted.

All mutation goes through ``apply_vote`` and ``apply_reset``. ``VotingLedger``
rolls the in-memory state back when the store fails to persist a call, so a
call either takes full effect or none.
"""
import logging
from enum import Enum
from typing import List, MutableMapping, Optional, Tuple

from eth_utils import is_address, to_checksum_address

from epochvote.models.proposal_model import Proposal, VoterRecord, VotingRound

logger = logging.getLogger(__name__)

FIRST_EPOCH = 1
# Stamp read for addresses that have no record; never equal to a live epoch.
NEVER_VOTED = 0


class ErrorCode(str, Enum):
    INVALID_PROPOSAL = "InvalidProposal"
    UNAUTHORIZED = "Unauthorized"
    ALREADY_VOTED = "AlreadyVoted"


REVERT_MESSAGES = {
    ErrorCode.INVALID_PROPOSAL: "Invalid proposal.",
    ErrorCode.UNAUTHORIZED: "Only the owner can reset votes.",
    ErrorCode.ALREADY_VOTED: "You have already voted.",
}


class LedgerError(Exception):
    """A call the ledger refused. Raised before any state is touched."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or REVERT_MESSAGES[code]
        super().__init__(self.message)


def normalize_address(address: str) -> str:
    """Return the EIP-55 checksum form of ``address`` or raise ValueError."""
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


class LedgerState:
    """
    The single owned state object of a ledger.

    ``voters`` maps checksum address -> last voted epoch. It may be a plain
    dict or a store-backed mapping; the ledger only ever does point reads and
    point writes on it.
    """

    def __init__(
        self,
        authority: str,
        proposals: List[Proposal],
        epoch: int = FIRST_EPOCH,
        voters: Optional[MutableMapping[str, int]] = None,
    ):
        self.authority = normalize_address(authority)
        self.proposals = proposals
        self.epoch = epoch
        self.voters = voters if voters is not None else {}

    @classmethod
    def from_round(cls, voting_round: VotingRound, voters: MutableMapping[str, int]) -> "LedgerState":
        proposals = [p.model_copy() for p in sorted(voting_round.proposals, key=lambda p: p.index)]
        return cls(voting_round.authority, proposals, voting_round.epoch, voters)

    def to_round(self) -> VotingRound:
        return VotingRound(
            epoch=self.epoch,
            authority=self.authority,
            proposals=[p.model_copy() for p in self.proposals],
        )

    def last_voted_epoch(self, address: str) -> int:
        return self.voters.get(address, NEVER_VOTED)


def apply_vote(state: LedgerState, voter: str, proposal_index: int) -> Proposal:
    voter = normalize_address(voter)

    # Range is checked first so an out-of-range index reports InvalidProposal
    # whatever the voter's current status.
    if isinstance(proposal_index, bool) or not isinstance(proposal_index, int):
        raise LedgerError(ErrorCode.INVALID_PROPOSAL)
    if not 0 <= proposal_index < len(state.proposals):
        raise LedgerError(ErrorCode.INVALID_PROPOSAL)
    if state.last_voted_epoch(voter) == state.epoch:
        raise LedgerError(ErrorCode.ALREADY_VOTED)

    # Stamp first: a failing voter-table write leaves the count alone.
    state.voters[voter] = state.epoch
    proposal = state.proposals[proposal_index]
    proposal.vote_count += 1
    return proposal


def apply_reset(state: LedgerState, caller: str) -> int:
    try:
        caller = normalize_address(caller)
    except ValueError:
        raise LedgerError(ErrorCode.UNAUTHORIZED)
    if caller != state.authority:
        raise LedgerError(ErrorCode.UNAUTHORIZED)

    state.epoch += 1
    for proposal in state.proposals:
        proposal.vote_count = 0
    return state.epoch


class VotingLedger:
    """Ledger state machine bound to a store that persists it."""

    def __init__(self, state: LedgerState, store):
        self.state = state
        self.store = store

    @classmethod
    def deploy(cls, store, authority: str, proposal_names: List[str]) -> "VotingLedger":
        if not isinstance(proposal_names, list) or not all(isinstance(n, str) for n in proposal_names):
            raise ValueError("proposal_names must be a list of strings")
        proposals = [Proposal(index=i, name=name) for i, name in enumerate(proposal_names)]
        state = LedgerState(authority, proposals, FIRST_EPOCH, store.voter_table())
        store.save_round(state.to_round())
        logger.info(f"Deployed ledger with {len(proposals)} proposals, authority {state.authority}")
        return cls(state, store)

    @classmethod
    def load(cls, store) -> Optional["VotingLedger"]:
        voting_round = store.load_round()
        if voting_round is None:
            return None
        logger.info(f"Loaded ledger at epoch {voting_round.epoch}")
        return cls(LedgerState.from_round(voting_round, store.voter_table()), store)

    # --- mutating calls ---

    def vote(self, voter: str, proposal_index: int) -> Proposal:
        voter = normalize_address(voter)
        snapshot = self._snapshot()
        previous_stamp = self.state.last_voted_epoch(voter)
        try:
            proposal = apply_vote(self.state, voter, proposal_index)
            self.store.save_round(self.state.to_round())
        except LedgerError:
            raise
        except Exception:
            logger.error(f"Persisting vote from {voter} failed, rolling back")
            self._restore(snapshot)
            if self.state.last_voted_epoch(voter) != previous_stamp:
                self.state.voters[voter] = previous_stamp
            raise
        logger.info(f"Vote for proposal {proposal_index} in epoch {self.state.epoch}")
        return proposal.model_copy()

    def reset_votes(self, caller: str) -> int:
        snapshot = self._snapshot()
        try:
            epoch = apply_reset(self.state, caller)
            self.store.save_round(self.state.to_round())
        except LedgerError:
            raise
        except Exception:
            logger.error("Persisting reset failed, rolling back")
            self._restore(snapshot)
            raise
        logger.info(f"Votes reset, now at epoch {epoch}")
        return epoch

    def _snapshot(self) -> Tuple[int, List[int]]:
        return self.state.epoch, [p.vote_count for p in self.state.proposals]

    def _restore(self, snapshot: Tuple[int, List[int]]) -> None:
        epoch, counts = snapshot
        self.state.epoch = epoch
        for proposal, count in zip(self.state.proposals, counts):
            proposal.vote_count = count

    # --- reads ---

    def get_proposal(self, index: int) -> Proposal:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.state.proposals):
            raise LedgerError(ErrorCode.INVALID_PROPOSAL)
        return self.state.proposals[index].model_copy()

    def get_proposal_count(self) -> int:
        return len(self.state.proposals)

    def has_voted(self, address: str) -> bool:
        address = normalize_address(address)
        return self.state.last_voted_epoch(address) == self.state.epoch

    def authority(self) -> str:
        return self.state.authority

    def current_epoch(self) -> int:
        return self.state.epoch

    def voter_record(self, address: str) -> VoterRecord:
        address = normalize_address(address)
        return VoterRecord(address=address, last_voted_epoch=self.state.last_voted_epoch(address))

    def voting_round(self) -> VotingRound:
        return self.state.to_round()
