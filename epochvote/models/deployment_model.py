from pydantic import BaseModel, ConfigDict, Field
from typing import List


class DeploymentInfo(BaseModel):
    """Descriptor published once at deployment and fetched by clients before any ledger call."""
    model_config = ConfigDict(populate_by_name=True)

    address: str
    authority: str
    proposals: List[str]
    network: str = Field(default="localhost", examples=["localhost"])
    chain_id: int = Field(default=1337, alias="chainId")
