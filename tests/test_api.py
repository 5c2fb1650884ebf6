import pytest
from fastapi.testclient import TestClient

from conftest import ADDR1, ADDR1_KEY, OWNER, OWNER_KEY, PROPOSALS, make_call
from epochvote.main import create_app


@pytest.fixture
def client(node):
    return TestClient(create_app(node))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "epoch": 1, "block": 0}


def test_deployment_descriptor(client, node):
    data = client.get("/deployment.json").json()
    assert data == {
        "address": node.deployment.address,
        "authority": OWNER,
        "proposals": PROPOSALS,
        "network": "localhost",
        "chainId": 1337,
    }


def test_read_surface(client):
    assert client.get("/ledger/proposals/count").json() == {"count": 3}
    assert client.get("/ledger/proposals/1").json() == {"name": "Proposal B", "voteCount": 0}
    assert client.get("/ledger/authority").json() == {"authority": OWNER}
    assert client.get("/ledger/epoch").json() == {"epoch": 1}
    assert client.get(f"/ledger/voters/{ADDR1}/has-voted").json() == {"address": ADDR1, "hasVoted": False}


def test_out_of_range_proposal_returns_code(client):
    response = client.get("/ledger/proposals/99")
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "InvalidProposal"


def test_malformed_address(client):
    response = client.get("/ledger/voters/0xnothex/has-voted")
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "InvalidAddress"


def test_transaction_flow(client, node):
    call = make_call(ADDR1_KEY, "vote", [0], node.deployment)
    response = client.post("/ledger/transactions", json=call.model_dump(by_alias=True))
    assert response.status_code == 200
    tx_hash = response.json()["txHash"]

    receipt = client.get(f"/ledger/transactions/{tx_hash}").json()
    assert receipt["status"] == "confirmed"
    assert receipt["blockNumber"] == 1
    assert client.get("/ledger/proposals/0").json() == {"name": "Proposal A", "voteCount": 1}
    assert client.get(f"/ledger/voters/{ADDR1}/has-voted").json()["hasVoted"] is True


def test_reverted_transaction_receipt(client, node):
    call = make_call(ADDR1_KEY, "resetVotes", [], node.deployment)
    tx_hash = client.post("/ledger/transactions", json=call.model_dump(by_alias=True)).json()["txHash"]
    receipt = client.get(f"/ledger/transactions/{tx_hash}").json()
    assert receipt["status"] == "reverted"
    assert receipt["errorCode"] == "Unauthorized"


def test_rejected_submission(client, node):
    call = make_call(OWNER_KEY, "resetVotes", [], node.deployment)
    payload = call.model_dump(by_alias=True)
    payload["sender"] = ADDR1
    response = client.post("/ledger/transactions", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "Rejected"


def test_unknown_method_is_validation_error(client, node):
    payload = make_call(OWNER_KEY, "resetVotes", [], node.deployment).model_dump(by_alias=True)
    payload["method"] = "selfDestruct"
    assert client.post("/ledger/transactions", json=payload).status_code == 422


def test_unknown_transaction(client):
    response = client.get("/ledger/transactions/0x" + "00" * 32)
    assert response.status_code == 404
