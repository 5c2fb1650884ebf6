import pytest
from eth_account import Account

from epochvote.chain import LedgerNode
from epochvote.deploy import deploy
from epochvote.ledger import VotingLedger
from epochvote.models.transaction_model import SignedCall
from epochvote.security import canonical_call, new_nonce, sign_text
from epochvote.storage import MemoryStore

# Well-known Hardhat development keys, never used outside tests
KEYS = [
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
]
OWNER_KEY, ADDR1_KEY, ADDR2_KEY = KEYS

PROPOSALS = ["Proposal A", "Proposal B", "Proposal C"]


def address_of(key: str) -> str:
    return Account.from_key(key).address


OWNER = address_of(OWNER_KEY)
ADDR1 = address_of(ADDR1_KEY)
ADDR2 = address_of(ADDR2_KEY)


def make_call(key, method, args, deployment, nonce=None, chain_id=None, ledger=None) -> SignedCall:
    sender = address_of(key)
    nonce = nonce or new_nonce()
    chain_id = deployment.chain_id if chain_id is None else chain_id
    ledger = ledger or deployment.address
    message = canonical_call(method, args, sender, nonce, chain_id, ledger)
    return SignedCall(
        method=method,
        args=args,
        sender=sender,
        nonce=nonce,
        chain_id=chain_id,
        ledger=ledger,
        signature=sign_text(key, message),
    )


@pytest.fixture
def ledger():
    return VotingLedger.deploy(MemoryStore(), OWNER, list(PROPOSALS))


@pytest.fixture
def node():
    voting_ledger, info = deploy(MemoryStore(), OWNER, list(PROPOSALS))
    return LedgerNode(voting_ledger, info)


@pytest.fixture
def manual_node():
    voting_ledger, info = deploy(MemoryStore(), OWNER, list(PROPOSALS))
    return LedgerNode(voting_ledger, info, automine=False)
