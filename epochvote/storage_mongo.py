# epochvote/storage_mongo.py
import logging
from typing import Iterator, MutableMapping, Optional

from pymongo import MongoClient

from epochvote.config import MONGO_DB, MONGO_URI
from epochvote.models.proposal_model import VotingRound

logger = logging.getLogger(__name__)

ROUNDS_COLLECTION = "rounds"
VOTERS_COLLECTION = "voters"
ROUND_ID = "ledger"


class MongoVoterTable(MutableMapping):
    """
    Voter records as one document per address:
    {"_id": <checksum address>, "last_voted_epoch": <int>}
    Reads and writes are point operations on ``_id``.
    """

    def __init__(self, collection):
        self.collection = collection

    def __getitem__(self, address: str) -> int:
        doc = self.collection.find_one({"_id": address}, {"last_voted_epoch": 1})
        if doc is None:
            raise KeyError(address)
        return doc["last_voted_epoch"]

    def __setitem__(self, address: str, epoch: int) -> None:
        self.collection.update_one(
            {"_id": address},
            {"$set": {"last_voted_epoch": epoch}},
            upsert=True,
        )

    def __delitem__(self, address: str) -> None:
        raise TypeError("voter records are never deleted")

    def __iter__(self) -> Iterator[str]:
        for doc in self.collection.find({}, {"_id": 1}):
            yield doc["_id"]

    def __len__(self) -> int:
        return self.collection.count_documents({})


class MongoLedgerStore:
    def __init__(self, client: Optional[MongoClient] = None, db_name: str = MONGO_DB):
        """
        Initialize MongoDB connection.

        Args:
            client: an existing client; a new one is opened on MONGO_URI otherwise
            db_name: database holding the rounds and voters collections
        """
        try:
            self.client = client if client is not None else MongoClient(MONGO_URI)
            self.db = self.client[db_name]
            self.rounds = self.db[ROUNDS_COLLECTION]
            self.voters = self.db[VOTERS_COLLECTION]
            logger.info(f"Connected to MongoDB database: {db_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise
        self._voter_table = MongoVoterTable(self.voters)

    def load_round(self) -> Optional[VotingRound]:
        doc = self.rounds.find_one({"_id": ROUND_ID})
        if doc is None:
            return None
        doc.pop("_id", None)
        return VotingRound.model_validate(doc)

    def save_round(self, voting_round: VotingRound) -> None:
        self.rounds.replace_one({"_id": ROUND_ID}, voting_round.model_dump(), upsert=True)

    def voter_table(self) -> MutableMapping[str, int]:
        return self._voter_table

    def close(self):
        """Close MongoDB connection"""
        self.client.close()
        logger.info("MongoDB connection closed")
