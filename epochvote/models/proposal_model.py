from pydantic import BaseModel, ConfigDict, Field
from typing import List


class Proposal(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(..., ge=0)
    name: str = Field(..., examples=["Proposal A"])
    vote_count: int = Field(default=0, ge=0, alias="voteCount")


class VotingRound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    epoch: int = Field(..., ge=1)
    authority: str
    proposals: List[Proposal]


class VoterRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str
    last_voted_epoch: int = Field(default=0, ge=0, alias="lastVotedEpoch")
