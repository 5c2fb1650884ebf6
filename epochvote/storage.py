# epochvote/storage.py
import json
import logging
import os
from typing import Any, Dict, Iterator, MutableMapping, Optional

from epochvote.models.proposal_model import VotingRound

logger = logging.getLogger(__name__)


class MemoryStore:
    """Keeps the ledger in process memory. Nothing survives a restart."""

    def __init__(self):
        self._round: Optional[Dict[str, Any]] = None
        self._voters: Dict[str, int] = {}

    def load_round(self) -> Optional[VotingRound]:
        if self._round is None:
            return None
        return VotingRound.model_validate(self._round)

    def save_round(self, voting_round: VotingRound) -> None:
        self._round = voting_round.model_dump()

    def voter_table(self) -> MutableMapping[str, int]:
        return self._voters


def _read_json(path: str, default: Dict[str, Any]) -> Dict[str, Any]:
    """
    Read a JSON file, creating it with ``default`` if it does not exist yet.
    A file that exists but does not parse is an error: resetting it would
    forget who has voted.
    """
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        _write_json(path, default)
        return dict(default)
    except json.JSONDecodeError as e:
        logger.error(f"Ledger file {path} is corrupt: {e}")
        raise


def _write_json(path: str, data: Dict[str, Any]) -> None:
    tmp = path + ".tmp"
    with open(tmp, "w") as f:
        json.dump(data, f, indent=2)
    os.replace(tmp, path)


class JsonVoterTable(MutableMapping):
    """Voter records kept in their own JSON file, written through on every update."""

    def __init__(self, path: str):
        self.path = path
        self._cache: Dict[str, int] = _read_json(path, {})

    def __getitem__(self, address: str) -> int:
        return self._cache[address]

    def __setitem__(self, address: str, epoch: int) -> None:
        # Disk first; the cache only changes once the write has landed.
        updated = dict(self._cache)
        updated[address] = epoch
        _write_json(self.path, updated)
        self._cache = updated

    def __delitem__(self, address: str) -> None:
        raise TypeError("voter records are never deleted")

    def __iter__(self) -> Iterator[str]:
        return iter(self._cache)

    def __len__(self) -> int:
        return len(self._cache)


class JsonFileStore:
    """
    File-backed store. The round (epoch, authority, proposals) and the voter
    table live in separate files so that a reset rewrites only the round.
    """

    def __init__(self, path: str):
        self.path = path
        root, ext = os.path.splitext(path)
        self.voters_path = f"{root}.voters{ext or '.json'}"
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._voters = JsonVoterTable(self.voters_path)

    def load_round(self) -> Optional[VotingRound]:
        data = _read_json(self.path, {"round": None})
        if not data.get("round"):
            return None
        return VotingRound.model_validate(data["round"])

    def save_round(self, voting_round: VotingRound) -> None:
        _write_json(self.path, {"round": voting_round.model_dump()})

    def voter_table(self) -> MutableMapping[str, int]:
        return self._voters
