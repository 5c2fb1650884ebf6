# epochvote/chain.py
"""
Ledger node: the transport that orders and applies mutating calls.

Signed calls are checked and queued in a mempool, then mined in arrival
order under a single lock. Every accepted call gets a receipt that moves
from ``pending`` to ``confirmed`` or ``reverted``. Reads share the same lock
so they always observe whole blocks.
"""
import asyncio
import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from epochvote.ledger import LedgerError, VotingLedger
from epochvote.models.deployment_model import DeploymentInfo
from epochvote.models.proposal_model import Proposal
from epochvote.models.transaction_model import SignedCall, TransactionReceipt, TxStatus
from epochvote.security import canonical_call, recover_signer, transaction_hash

logger = logging.getLogger(__name__)

# method -> number of uint arguments
CALL_ARITY = {"vote": 1, "resetVotes": 0}


class TransactionRejected(Exception):
    """The call envelope was refused; nothing reached the mempool."""


class LedgerNode:
    """Receipts and used nonces are kept for the node's lifetime, like a chain's history."""

    def __init__(self, ledger: VotingLedger, deployment: DeploymentInfo, automine: bool = True):
        self.ledger = ledger
        self.deployment = deployment
        self.automine = automine
        self.block_number = 0
        self._lock = threading.RLock()
        self._mempool: Deque[Tuple[str, str, List[int], str]] = deque()
        self._receipts: Dict[str, TransactionReceipt] = {}
        self._used_nonces: Set[Tuple[str, str]] = set()

    # --- submission ---

    def submit(self, call: SignedCall) -> TransactionReceipt:
        if call.chain_id != self.deployment.chain_id:
            raise TransactionRejected(f"Wrong chain id {call.chain_id}, expected {self.deployment.chain_id}")
        if call.ledger.lower() != self.deployment.address.lower():
            raise TransactionRejected("Call is addressed to a different ledger")
        if len(call.args) != CALL_ARITY[call.method]:
            raise TransactionRejected(f"{call.method} takes {CALL_ARITY[call.method]} argument(s)")

        message = canonical_call(call.method, call.args, call.sender, call.nonce, call.chain_id, call.ledger)
        try:
            signer = recover_signer(message, call.signature)
        except Exception as e:
            raise TransactionRejected(f"Invalid signature: {e}")
        if signer.lower() != call.sender.lower():
            raise TransactionRejected("Signature does not match sender")

        tx_hash = transaction_hash(message, call.signature)
        with self._lock:
            if (signer, call.nonce) in self._used_nonces:
                raise TransactionRejected("Nonce already used")
            self._used_nonces.add((signer, call.nonce))
            self._receipts[tx_hash] = TransactionReceipt(
                tx_hash=tx_hash, sender=signer, method=call.method, args=list(call.args)
            )
            self._mempool.append((tx_hash, call.method, list(call.args), signer))
        logger.info(f"Accepted {call.method}{tuple(call.args)} from {signer} as {tx_hash}")

        if self.automine:
            self.mine()
        return self.get_receipt(tx_hash)

    def mine(self) -> List[TransactionReceipt]:
        """Apply every pending call in arrival order as one block."""
        with self._lock:
            if not self._mempool:
                return []
            self.block_number += 1
            mined = []
            while self._mempool:
                tx_hash, method, args, sender = self._mempool.popleft()
                receipt = self._receipts[tx_hash]
                try:
                    if method == "vote":
                        self.ledger.vote(sender, args[0])
                    else:
                        self.ledger.reset_votes(sender)
                    receipt.status = TxStatus.CONFIRMED
                except LedgerError as e:
                    receipt.status = TxStatus.REVERTED
                    receipt.error_code = e.code.value
                    receipt.error_message = e.message
                    logger.warning(f"Transaction {tx_hash} reverted: {e.code.value}")
                except Exception as e:
                    logger.exception(f"Transaction {tx_hash} failed while applying")
                    receipt.status = TxStatus.REVERTED
                    receipt.error_message = str(e)
                receipt.block_number = self.block_number
                receipt.epoch = self.ledger.current_epoch()
                mined.append(receipt.model_copy())
            logger.info(f"Mined block {self.block_number} with {len(mined)} transaction(s)")
            return mined

    def get_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        with self._lock:
            receipt = self._receipts.get(tx_hash.lower())
            return receipt.model_copy() if receipt else None

    # --- reads ---

    def get_proposal(self, index: int) -> Proposal:
        with self._lock:
            return self.ledger.get_proposal(index)

    def get_proposal_count(self) -> int:
        with self._lock:
            return self.ledger.get_proposal_count()

    def has_voted(self, address: str) -> bool:
        with self._lock:
            return self.ledger.has_voted(address)

    def authority(self) -> str:
        with self._lock:
            return self.ledger.authority()

    def current_epoch(self) -> int:
        with self._lock:
            return self.ledger.current_epoch()


async def run_miner(node: LedgerNode, interval: float):
    """Mine a block every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        node.mine()
