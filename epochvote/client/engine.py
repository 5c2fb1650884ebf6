# epochvote/client/engine.py
"""
Client reconciliation engine.

Every mutating call runs through the submission queue, waits for the ledger
to confirm or revert it, and then reloads state from the ledger. Local state
is only ever replaced by what ``refresh`` reads back; the optimistic
projection shown while a call is in flight is thrown away on every exit
path.
"""
import asyncio
import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from epochvote.client.errors import (
    FAILURE_MESSAGES,
    ConfirmationTimeout,
    FailureKind,
    LedgerCallError,
    TransportError,
    WalletNotConnected,
    WrongNetwork,
    classify_failure,
)
from epochvote.client.session import LedgerSnapshot, Session, UiState
from epochvote.client.submission_queue import SubmissionQueue
from epochvote.client.transport import LedgerTransport
from epochvote.client.wallet import LocalWallet
from epochvote.config import CONFIRMATION_TIMEOUT
from epochvote.ledger import ErrorCode
from epochvote.models.deployment_model import DeploymentInfo
from epochvote.models.transaction_model import TxStatus

logger = logging.getLogger(__name__)

SUCCESS_MESSAGES = {
    "vote": "Vote successfully recorded!",
    "resetVotes": "All votes have been reset!",
}
BUSY_MESSAGE = "Another transaction is still in progress"
PENDING_MESSAGE = "Transaction submitted, still waiting for confirmation"
NOT_DEPLOYED_MESSAGE = "Contract not deployed. Please deploy the contract first."
REFRESH_FAILED_MESSAGE = "Failed to load proposals"
WRONG_NETWORK_MESSAGE = "Wrong network"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    # broadcast but not final when the confirmation wait ran out
    PENDING = "pending"
    # refused locally, nothing was sent
    BUSY = "busy"


class SubmissionOutcome(BaseModel):
    status: OutcomeStatus
    failure: Optional[FailureKind] = None
    message: Optional[str] = None
    tx_hash: Optional[str] = None
    state: Optional[LedgerSnapshot] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


class ReconciliationEngine:
    def __init__(self, transport: LedgerTransport, wallet: LocalWallet,
                 confirmation_timeout: float = CONFIRMATION_TIMEOUT):
        self.transport = transport
        self.wallet = wallet
        self.confirmation_timeout = confirmation_timeout
        self.queue = SubmissionQueue()
        self.session = Session()
        self.deployment: Optional[DeploymentInfo] = None
        self._tasks = set()

    # ------------------------------
    # Lifecycle
    # ------------------------------
    async def start(self) -> bool:
        """Load the deployment descriptor, subscribe to wallet events and do a first refresh."""
        try:
            self.deployment = await self.transport.fetch_deployment()
        except Exception as e:
            logger.error(f"Failed to load deployment info: {e}")
            self._set_message(NOT_DEPLOYED_MESSAGE, is_error=True)
            return False
        self.wallet.on("accountsChanged", self._on_accounts_changed)
        self.wallet.on("chainChanged", self._on_chain_changed)
        return await self.refresh()

    async def connect(self) -> bool:
        try:
            await self.wallet.connect()
        except Exception as e:
            logger.error(f"Failed to connect wallet: {e}")
            self._set_message(FAILURE_MESSAGES[classify_failure(e)], is_error=True)
            return False
        self.session = Session()
        return await self.refresh()

    def disconnect(self):
        self.wallet.disconnect()
        self.session = Session()

    def stop(self):
        self.wallet.remove_listener("accountsChanged", self._on_accounts_changed)
        self.wallet.remove_listener("chainChanged", self._on_chain_changed)
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------
    # Reconciliation
    # ------------------------------
    async def refresh(self) -> bool:
        """
        Reload proposals, voted status and authority status from the ledger.
        Failures are logged and surfaced as the session message; never raised.
        """
        if self.deployment is None:
            self._set_message(NOT_DEPLOYED_MESSAGE, is_error=True)
            return False

        account = self.wallet.account
        try:
            count = await self.transport.get_proposal_count()
            proposals = []
            for i in range(count):
                proposals.append(await self.transport.get_proposal(i))
            has_voted = await self.transport.has_voted(account) if account else False
            authority = await self.transport.authority()
            epoch = await self.transport.current_epoch()
        except Exception as e:
            logger.error(f"Failed to refresh ledger state: {e}")
            self._set_message(REFRESH_FAILED_MESSAGE, is_error=True)
            return False

        if self.wallet.account != account:
            # account switched while reading; the change handler refreshes again
            return False

        self.session.confirmed_state = LedgerSnapshot(
            account=account,
            epoch=epoch,
            proposals=proposals,
            has_voted=has_voted,
            is_owner=bool(account) and authority.lower() == account.lower(),
        )
        return True

    async def submit_vote(self, index: int) -> SubmissionOutcome:
        return await self._submit("vote", [index])

    async def submit_reset(self) -> SubmissionOutcome:
        return await self._submit("resetVotes", [])

    async def poll_pending(self) -> Optional[SubmissionOutcome]:
        """Settle a transaction whose confirmation wait ran out earlier."""
        tx_hash = self.session.pending_tx_hash
        if tx_hash is None:
            return None
        try:
            receipt = await self.transport.get_receipt(tx_hash)
        except Exception as e:
            logger.error(f"Failed to poll transaction {tx_hash}: {e}")
            return SubmissionOutcome(status=OutcomeStatus.PENDING, message=PENDING_MESSAGE, tx_hash=tx_hash)
        if receipt is None or receipt.status == TxStatus.PENDING:
            return SubmissionOutcome(status=OutcomeStatus.PENDING, message=PENDING_MESSAGE, tx_hash=tx_hash)

        self.session.pending_tx_hash = None
        await self.refresh()
        if receipt.status == TxStatus.CONFIRMED:
            message = SUCCESS_MESSAGES[receipt.method]
            self._set_message(message, is_error=False)
            return SubmissionOutcome(status=OutcomeStatus.SUCCESS, message=message, tx_hash=tx_hash,
                                     state=self._confirmed_copy())
        kind = classify_failure(LedgerCallError(receipt.error_code or "Unknown", receipt.error_message or ""))
        self._set_message(FAILURE_MESSAGES[kind], is_error=True)
        return SubmissionOutcome(status=OutcomeStatus.FAILED, failure=kind, message=FAILURE_MESSAGES[kind],
                                 tx_hash=tx_hash)

    def view(self) -> UiState:
        snapshot = self.session.optimistic_state or self.session.confirmed_state
        return UiState(
            proposals=[p.model_copy() for p in snapshot.proposals],
            has_voted=snapshot.has_voted,
            is_owner=snapshot.is_owner,
            message=self.session.message,
            is_error=self.session.is_error,
            pending_operation=self.session.pending_operation,
            controls_disabled=self.queue.busy or self.session.pending_tx_hash is not None,
        )

    # ------------------------------
    # Submission
    # ------------------------------
    async def _submit(self, method: str, args: List[int]) -> SubmissionOutcome:
        if self.session.pending_tx_hash is not None or not self.queue.try_acquire(method):
            return SubmissionOutcome(status=OutcomeStatus.BUSY, message=BUSY_MESSAGE)
        try:
            return await self._run(method, args)
        finally:
            self.queue.release()
            self.session.pending_operation = None
            self.session.optimistic_state = None

    def _check_ready(self, method: str):
        if self.deployment is None:
            raise TransportError("Deployment info not loaded")
        if not self.wallet.is_connected:
            raise WalletNotConnected()
        if self.wallet.chain_id != self.deployment.chain_id:
            raise WrongNetwork(self.wallet.chain_id, self.deployment.chain_id)
        if method == "resetVotes" and not self.session.confirmed_state.is_owner:
            raise LedgerCallError(ErrorCode.UNAUTHORIZED.value, "Caller is not the authority")

    async def _run(self, method: str, args: List[int]) -> SubmissionOutcome:
        self.session.pending_operation = method
        self.session.message = None
        tx_hash = None
        try:
            self._check_ready(method)
            call = await self.wallet.sign_call(method, args, self.deployment)
            confirmed = self.session.confirmed_state
            self.session.optimistic_state = (
                confirmed.with_vote(args[0]) if method == "vote" else confirmed.with_reset()
            )
            handle = await self.transport.send_transaction(call)
            tx_hash = handle.tx_hash
            self.queue.broadcast_acknowledged(tx_hash)
            receipt = await handle.wait(self.confirmation_timeout)
        except ConfirmationTimeout as e:
            # may still confirm: re-read instead of declaring failure
            logger.warning(f"{method} {e.tx_hash} not confirmed after {self.confirmation_timeout}s")
            self.queue.settle()
            self.session.pending_tx_hash = e.tx_hash
            self.session.optimistic_state = None
            await self.refresh()
            self._set_message(PENDING_MESSAGE, is_error=False)
            return SubmissionOutcome(status=OutcomeStatus.PENDING, message=PENDING_MESSAGE, tx_hash=e.tx_hash,
                                     state=self._confirmed_copy())
        except Exception as e:
            kind = classify_failure(e)
            logger.error(f"Failed to {method}: {kind.value}: {e}")
            self.queue.settle()
            self._set_message(FAILURE_MESSAGES[kind], is_error=True)
            return SubmissionOutcome(status=OutcomeStatus.FAILED, failure=kind, message=FAILURE_MESSAGES[kind],
                                     tx_hash=tx_hash)

        self.queue.settle()
        self.session.optimistic_state = None
        message = SUCCESS_MESSAGES[method]
        if await self.refresh():
            self._set_message(message, is_error=False)
        return SubmissionOutcome(status=OutcomeStatus.SUCCESS, message=message, tx_hash=receipt.tx_hash,
                                 state=self._confirmed_copy())

    # ------------------------------
    # Wallet notifications
    # ------------------------------
    def _on_accounts_changed(self, accounts):
        self.session = Session()
        if not accounts:
            logger.info("Wallet locked or disconnected")
            self.wallet.disconnect()
            return
        logger.info(f"Account changed to {accounts[0]}")
        self._schedule_refresh()

    def _on_chain_changed(self, chain_id):
        self.session = Session()
        if self.deployment is not None and chain_id != self.deployment.chain_id:
            logger.warning(f"Wallet switched to chain {chain_id}, ledger is on {self.deployment.chain_id}")
            self._set_message(WRONG_NETWORK_MESSAGE, is_error=True)
        self._schedule_refresh()

    def _schedule_refresh(self):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop running; the caller refreshes explicitly
            return
        task = loop.create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------
    # Helpers
    # ------------------------------
    def _set_message(self, message: Optional[str], is_error: bool):
        self.session.message = message
        self.session.is_error = is_error

    def _confirmed_copy(self) -> LedgerSnapshot:
        return self.session.confirmed_state.model_copy(deep=True)
