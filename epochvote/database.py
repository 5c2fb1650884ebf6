# epochvote/database.py
import logging

from epochvote.config import LEDGER_DB_PATH, LEDGER_STORE
from epochvote.storage import JsonFileStore, MemoryStore

logger = logging.getLogger(__name__)


def open_store(kind: str = LEDGER_STORE):
    """Open the ledger store selected by LEDGER_STORE (memory | json | mongo)."""
    if kind == "memory":
        return MemoryStore()
    if kind == "json":
        logger.info(f"Using JSON ledger store at {LEDGER_DB_PATH}")
        return JsonFileStore(LEDGER_DB_PATH)
    if kind == "mongo":
        from epochvote.storage_mongo import MongoLedgerStore
        return MongoLedgerStore()
    raise ValueError(f"Unknown LEDGER_STORE {kind!r}. Use memory, json or mongo.")
