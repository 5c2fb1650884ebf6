# epochvote/client/transport.py
import asyncio
import logging
from typing import Optional

import httpx

from epochvote.client.errors import ConfirmationTimeout, LedgerCallError, TransportError
from epochvote.config import LEDGER_API_URL, RECEIPT_POLL_INTERVAL
from epochvote.models.deployment_model import DeploymentInfo
from epochvote.models.proposal_model import Proposal
from epochvote.models.transaction_model import SignedCall, TransactionReceipt, TxStatus

logger = logging.getLogger(__name__)

TIMEOUT = 10.0


class TransactionHandle:
    """A broadcast call; ``wait`` suspends until it is confirmed or reverted."""

    def __init__(self, transport: "LedgerTransport", tx_hash: str, poll_interval: float = RECEIPT_POLL_INTERVAL):
        self.transport = transport
        self.tx_hash = tx_hash
        self.poll_interval = poll_interval

    async def wait(self, timeout: float) -> TransactionReceipt:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.transport.get_receipt(self.tx_hash)
            if receipt is not None and receipt.status == TxStatus.CONFIRMED:
                return receipt
            if receipt is not None and receipt.status == TxStatus.REVERTED:
                raise LedgerCallError(
                    receipt.error_code or "Unknown",
                    receipt.error_message or "Transaction reverted",
                    tx_hash=self.tx_hash,
                )
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ConfirmationTimeout(self.tx_hash)
            await asyncio.sleep(min(self.poll_interval, remaining))


class LedgerTransport:
    """HTTP client for the ledger node API."""

    def __init__(self, base_url: str = LEDGER_API_URL, client: Optional[httpx.AsyncClient] = None,
                 poll_interval: float = RECEIPT_POLL_INTERVAL):
        self.client = client if client is not None else httpx.AsyncClient(base_url=base_url, timeout=TIMEOUT)
        self.poll_interval = poll_interval

    async def aclose(self):
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> dict:
        if response.status_code in (400, 404):
            detail = {}
            try:
                detail = response.json().get("detail") or {}
            except ValueError:
                pass
            if isinstance(detail, dict) and "code" in detail:
                raise LedgerCallError(detail["code"], detail.get("message", ""))
        if response.is_error:
            raise TransportError(f"HTTP {response.status_code} from {response.request.url}")
        return response.json()

    async def _get(self, path: str) -> dict:
        return self._decode(await self._request("GET", path))

    # --- reads ---

    async def fetch_deployment(self) -> DeploymentInfo:
        return DeploymentInfo.model_validate(await self._get("/deployment.json"))

    async def get_proposal_count(self) -> int:
        return int((await self._get("/ledger/proposals/count"))["count"])

    async def get_proposal(self, index: int) -> Proposal:
        data = await self._get(f"/ledger/proposals/{index}")
        return Proposal(index=index, name=data["name"], vote_count=int(data["voteCount"]))

    async def has_voted(self, address: str) -> bool:
        return bool((await self._get(f"/ledger/voters/{address}/has-voted"))["hasVoted"])

    async def authority(self) -> str:
        return (await self._get("/ledger/authority"))["authority"]

    async def current_epoch(self) -> int:
        return int((await self._get("/ledger/epoch"))["epoch"])

    # --- transactions ---

    async def send_transaction(self, call: SignedCall) -> TransactionHandle:
        response = await self._request("POST", "/ledger/transactions", json=call.model_dump(by_alias=True))
        data = self._decode(response)
        logger.info(f"Broadcast {call.method} as {data['txHash']}")
        return TransactionHandle(self, data["txHash"], self.poll_interval)

    async def get_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        response = await self._request("GET", f"/ledger/transactions/{tx_hash}")
        if response.status_code == 404:
            return None
        return TransactionReceipt.model_validate(self._decode(response))
