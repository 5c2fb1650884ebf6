from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


class SignedCall(BaseModel):
    """A mutating ledger call signed by its sender's key."""
    model_config = ConfigDict(populate_by_name=True)

    method: Literal["vote", "resetVotes"]
    args: List[int] = Field(default_factory=list)
    sender: str
    nonce: str
    chain_id: int = Field(..., alias="chainId")
    ledger: str
    signature: str


class TransactionReceipt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="txHash")
    status: TxStatus = TxStatus.PENDING
    sender: str
    method: str
    args: List[int] = Field(default_factory=list)
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    epoch: Optional[int] = None
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
