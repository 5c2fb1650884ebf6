# epochvote/client/wallet.py
import inspect
import logging
from typing import Callable, Dict, List, Optional

from eth_account import Account

from epochvote.client.errors import UserRejectedRequest, WalletNotConnected
from epochvote.config import CHAIN_ID
from epochvote.models.deployment_model import DeploymentInfo
from epochvote.models.transaction_model import SignedCall
from epochvote.security import canonical_call, new_nonce, sign_text

logger = logging.getLogger(__name__)

WALLET_EVENTS = ("accountsChanged", "chainChanged")


class LocalWallet:
    """
    Key-holding wallet with the same surface a browser wallet offers:
    connect / disconnect, per-call signing that the holder may decline, and
    ``accountsChanged`` / ``chainChanged`` notifications.

    ``approve(method, args)`` is asked before every signature; it may return
    a bool or an awaitable of one. Without it every call is approved.
    """

    def __init__(self, private_key: Optional[str] = None, chain_id: int = CHAIN_ID,
                 approve: Optional[Callable] = None):
        self._signer = Account.from_key(private_key) if private_key else None
        self.chain_id = chain_id
        self.approve = approve
        self.account: Optional[str] = None
        self._listeners: Dict[str, List[Callable]] = {event: [] for event in WALLET_EVENTS}

    @property
    def is_connected(self) -> bool:
        return self.account is not None

    async def connect(self) -> str:
        if self._signer is None:
            raise WalletNotConnected("No account available in wallet")
        self.account = self._signer.address
        logger.info(f"Wallet connected: {self.account}")
        return self.account

    def disconnect(self):
        self.account = None

    # --- notifications ---

    def on(self, event: str, handler: Callable):
        self._listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Callable):
        if handler in self._listeners[event]:
            self._listeners[event].remove(handler)

    def _emit(self, event: str, payload):
        for handler in list(self._listeners[event]):
            handler(payload)

    def switch_account(self, private_key: Optional[str]):
        """Holder picked another key in the wallet (None locks the wallet)."""
        self._signer = Account.from_key(private_key) if private_key else None
        if self.account is None:
            return
        self.account = self._signer.address if self._signer else None
        self._emit("accountsChanged", [self.account] if self.account else [])

    def switch_chain(self, chain_id: int):
        self.chain_id = chain_id
        self._emit("chainChanged", chain_id)

    # --- signing ---

    async def sign_call(self, method: str, args: List[int], deployment: DeploymentInfo) -> SignedCall:
        if self.account is None:
            raise WalletNotConnected()
        if self.approve is not None:
            approved = self.approve(method, list(args))
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                raise UserRejectedRequest("User rejected the request.")

        nonce = new_nonce()
        message = canonical_call(method, args, self.account, nonce, self.chain_id, deployment.address)
        return SignedCall(
            method=method,
            args=list(args),
            sender=self.account,
            nonce=nonce,
            chain_id=self.chain_id,
            ledger=deployment.address,
            signature=sign_text(self._signer.key, message),
        )
