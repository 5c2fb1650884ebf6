# epochvote/client/errors.py
from enum import Enum
from typing import Optional

from epochvote.ledger import ErrorCode


class FailureKind(str, Enum):
    INVALID_PROPOSAL = "InvalidProposal"
    UNAUTHORIZED = "Unauthorized"
    ALREADY_VOTED = "AlreadyVoted"
    USER_CANCELLED = "UserCancelled"
    TRANSPORT_FAILURE = "TransportFailure"
    WALLET_NOT_CONNECTED = "WalletNotConnected"
    UNKNOWN = "Unknown"


FAILURE_MESSAGES = {
    FailureKind.INVALID_PROPOSAL: "Invalid proposal",
    FailureKind.UNAUTHORIZED: "Only owner can reset votes",
    FailureKind.ALREADY_VOTED: "You have already voted",
    FailureKind.USER_CANCELLED: "Transaction was rejected",
    FailureKind.TRANSPORT_FAILURE: "Network error, please try again",
    FailureKind.WALLET_NOT_CONNECTED: "Wallet not connected",
    FailureKind.UNKNOWN: "Transaction failed",
}

# Kinds that leave ledger and local state untouched, so the same call can be sent again
RETRYABLE = frozenset({FailureKind.USER_CANCELLED, FailureKind.TRANSPORT_FAILURE})

_LEDGER_CODES = {
    ErrorCode.INVALID_PROPOSAL.value: FailureKind.INVALID_PROPOSAL,
    ErrorCode.UNAUTHORIZED.value: FailureKind.UNAUTHORIZED,
    ErrorCode.ALREADY_VOTED.value: FailureKind.ALREADY_VOTED,
}


class UserRejectedRequest(Exception):
    """The wallet holder declined to sign."""


class WalletNotConnected(Exception):
    pass


class WrongNetwork(Exception):
    def __init__(self, chain_id: int, expected: int):
        self.chain_id = chain_id
        self.expected = expected
        super().__init__(f"Wallet is on chain {chain_id}, ledger is on chain {expected}")


class TransportError(Exception):
    """The ledger could not be reached or answered with a server error."""


class LedgerCallError(Exception):
    """The ledger answered with a structured error code."""

    def __init__(self, code: str, message: str = "", tx_hash: Optional[str] = None):
        self.code = code
        self.message = message
        self.tx_hash = tx_hash
        super().__init__(f"{code}: {message}" if message else code)


class ConfirmationTimeout(Exception):
    """No final receipt yet. The transaction may still confirm."""

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(f"Transaction {tx_hash} not confirmed yet")


def classify_failure(error: BaseException) -> FailureKind:
    if isinstance(error, LedgerCallError):
        return _LEDGER_CODES.get(error.code, FailureKind.UNKNOWN)
    if isinstance(error, UserRejectedRequest):
        return FailureKind.USER_CANCELLED
    if isinstance(error, (TransportError, WrongNetwork)):
        return FailureKind.TRANSPORT_FAILURE
    if isinstance(error, WalletNotConnected):
        return FailureKind.WALLET_NOT_CONNECTED
    return FailureKind.UNKNOWN
