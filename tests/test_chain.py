import pytest

from conftest import ADDR1, ADDR1_KEY, ADDR2_KEY, OWNER, OWNER_KEY, PROPOSALS, make_call
from epochvote.chain import LedgerNode, TransactionRejected
from epochvote.deploy import deploy
from epochvote.models.transaction_model import TxStatus
from epochvote.storage import MemoryStore


def test_vote_is_confirmed_when_automining(node):
    receipt = node.submit(make_call(ADDR1_KEY, "vote", [0], node.deployment))
    assert receipt.status == TxStatus.CONFIRMED
    assert receipt.sender == ADDR1
    assert receipt.block_number == 1
    assert node.get_proposal(0).vote_count == 1
    assert node.has_voted(ADDR1)


def test_reverted_receipt_carries_error_code(node):
    node.submit(make_call(ADDR1_KEY, "vote", [0], node.deployment))
    receipt = node.submit(make_call(ADDR1_KEY, "vote", [1], node.deployment))
    assert receipt.status == TxStatus.REVERTED
    assert receipt.error_code == "AlreadyVoted"
    assert receipt.error_message == "You have already voted."

    receipt = node.submit(make_call(ADDR2_KEY, "vote", [99], node.deployment))
    assert receipt.error_code == "InvalidProposal"

    receipt = node.submit(make_call(ADDR2_KEY, "resetVotes", [], node.deployment))
    assert receipt.error_code == "Unauthorized"


def test_reset_by_authority(node):
    node.submit(make_call(ADDR1_KEY, "vote", [0], node.deployment))
    receipt = node.submit(make_call(OWNER_KEY, "resetVotes", [], node.deployment))
    assert receipt.status == TxStatus.CONFIRMED
    assert receipt.epoch == 2
    assert not node.has_voted(ADDR1)


def test_manual_mining_keeps_calls_pending(manual_node):
    first = manual_node.submit(make_call(ADDR1_KEY, "vote", [0], manual_node.deployment))
    second = manual_node.submit(make_call(ADDR1_KEY, "vote", [2], manual_node.deployment))
    assert first.status == second.status == TxStatus.PENDING
    assert manual_node.get_proposal(0).vote_count == 0

    mined = manual_node.mine()

    assert [r.tx_hash for r in mined] == [first.tx_hash, second.tx_hash]
    assert [r.status for r in mined] == [TxStatus.CONFIRMED, TxStatus.REVERTED]
    assert manual_node.get_receipt(second.tx_hash).error_code == "AlreadyVoted"
    assert manual_node.get_proposal(2).vote_count == 0
    assert manual_node.mine() == []


def test_signature_must_match_sender(node):
    call = make_call(ADDR1_KEY, "vote", [0], node.deployment)
    forged = call.model_copy(update={"sender": node.authority()})
    with pytest.raises(TransactionRejected):
        node.submit(forged)
    assert node.get_proposal(0).vote_count == 0


def test_tampered_arguments_are_rejected(node):
    call = make_call(ADDR1_KEY, "vote", [0], node.deployment)
    with pytest.raises(TransactionRejected):
        node.submit(call.model_copy(update={"args": [1]}))


def test_replayed_nonce_is_rejected(node):
    call = make_call(ADDR1_KEY, "vote", [0], node.deployment)
    node.submit(call)
    with pytest.raises(TransactionRejected, match="Nonce"):
        node.submit(call)


def test_wrong_chain_or_ledger_is_rejected(node):
    with pytest.raises(TransactionRejected, match="chain"):
        node.submit(make_call(ADDR1_KEY, "vote", [0], node.deployment, chain_id=1))
    with pytest.raises(TransactionRejected, match="ledger"):
        node.submit(make_call(ADDR1_KEY, "vote", [0], node.deployment,
                              ledger="0x" + "ab" * 20))


def test_argument_count_is_checked(node):
    with pytest.raises(TransactionRejected):
        node.submit(make_call(ADDR1_KEY, "vote", [], node.deployment))
    with pytest.raises(TransactionRejected):
        node.submit(make_call(OWNER_KEY, "resetVotes", [1], node.deployment))


def test_unknown_receipt(node):
    assert node.get_receipt("0x" + "00" * 32) is None


def test_negative_index_reverts_as_invalid_proposal(node):
    receipt = node.submit(make_call(ADDR1_KEY, "vote", [-1], node.deployment))
    assert receipt.status == TxStatus.REVERTED
    assert receipt.error_code == "InvalidProposal"
    assert not node.has_voted(ADDR1)


class BrokenStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.broken = False

    def save_round(self, voting_round):
        if self.broken:
            raise IOError("disk full")
        super().save_round(voting_round)


def test_store_failure_reverts_without_effect():
    store = BrokenStore()
    voting_ledger, info = deploy(store, OWNER, list(PROPOSALS))
    node = LedgerNode(voting_ledger, info)
    store.broken = True

    receipt = node.submit(make_call(ADDR1_KEY, "vote", [0], node.deployment))

    assert receipt.status == TxStatus.REVERTED
    assert node.get_proposal(0).vote_count == 0
    assert not node.has_voted(ADDR1)
