import pytest

from epochvote.client.errors import (
    FAILURE_MESSAGES,
    ConfirmationTimeout,
    FailureKind,
    LedgerCallError,
    TransportError,
    UserRejectedRequest,
    WalletNotConnected,
    WrongNetwork,
    classify_failure,
)


@pytest.mark.parametrize("error, kind", [
    (LedgerCallError("InvalidProposal"), FailureKind.INVALID_PROPOSAL),
    (LedgerCallError("Unauthorized"), FailureKind.UNAUTHORIZED),
    (LedgerCallError("AlreadyVoted"), FailureKind.ALREADY_VOTED),
    (LedgerCallError("Rejected", "Nonce already used"), FailureKind.UNKNOWN),
    (UserRejectedRequest(), FailureKind.USER_CANCELLED),
    (TransportError("connection refused"), FailureKind.TRANSPORT_FAILURE),
    (WrongNetwork(1, 1337), FailureKind.TRANSPORT_FAILURE),
    (WalletNotConnected(), FailureKind.WALLET_NOT_CONNECTED),
    (RuntimeError("boom"), FailureKind.UNKNOWN),
])
def test_classify_failure(error, kind):
    assert classify_failure(error) == kind


def test_classification_ignores_message_text():
    error = LedgerCallError("Unknown", "execution reverted: You have already voted.")
    assert classify_failure(error) == FailureKind.UNKNOWN


def test_every_kind_has_a_message():
    assert set(FAILURE_MESSAGES) == set(FailureKind)


def test_confirmation_timeout_keeps_hash():
    assert ConfirmationTimeout("0xabc").tx_hash == "0xabc"
