from fastapi import APIRouter, Depends, HTTPException, Request

from epochvote.chain import LedgerNode, TransactionRejected
from epochvote.ledger import LedgerError
from epochvote.models.transaction_model import SignedCall

ledger_router = APIRouter(prefix="/ledger", tags=["Ledger"])


def get_node(request: Request) -> LedgerNode:
    return request.app.state.node


def _ledger_error(e: LedgerError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": e.code.value, "message": e.message})


# ------------------------------
# Reads
# ------------------------------
@ledger_router.get("/proposals/count")
def get_proposal_count(node: LedgerNode = Depends(get_node)):
    return {"count": node.get_proposal_count()}


@ledger_router.get("/proposals/{index}")
def get_proposal(index: int, node: LedgerNode = Depends(get_node)):
    try:
        proposal = node.get_proposal(index)
    except LedgerError as e:
        raise _ledger_error(e)
    return {"name": proposal.name, "voteCount": proposal.vote_count}


@ledger_router.get("/voters/{address}/has-voted")
def has_voted(address: str, node: LedgerNode = Depends(get_node)):
    try:
        voted = node.has_voted(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "InvalidAddress", "message": str(e)})
    return {"address": address, "hasVoted": voted}


@ledger_router.get("/authority")
def get_authority(node: LedgerNode = Depends(get_node)):
    return {"authority": node.authority()}


@ledger_router.get("/epoch")
def get_epoch(node: LedgerNode = Depends(get_node)):
    return {"epoch": node.current_epoch()}


# ------------------------------
# Mutating calls
# ------------------------------
@ledger_router.post("/transactions")
def send_transaction(call: SignedCall, node: LedgerNode = Depends(get_node)):
    """
    Accepts a signed vote / resetVotes call. The response only means the call
    was broadcast; poll the receipt for confirmation.
    """
    try:
        receipt = node.submit(call)
    except TransactionRejected as e:
        raise HTTPException(status_code=400, detail={"code": "Rejected", "message": str(e)})
    return {"txHash": receipt.tx_hash, "status": receipt.status.value}


@ledger_router.get("/transactions/{tx_hash}")
def get_transaction_receipt(tx_hash: str, node: LedgerNode = Depends(get_node)):
    receipt = node.get_receipt(tx_hash)
    if receipt is None:
        raise HTTPException(status_code=404, detail={"code": "UnknownTransaction", "message": "Transaction not found."})
    return receipt.model_dump(by_alias=True, mode="json")
