import json
import os

import pytest

from conftest import ADDR1, ADDR2, OWNER, PROPOSALS
from epochvote.database import open_store
from epochvote.ledger import FIRST_EPOCH, VotingLedger
from epochvote.storage import JsonFileStore, MemoryStore


def test_json_store_survives_reload(tmp_path):
    path = str(tmp_path / "ledger" / "ledger_db.json")
    ledger = VotingLedger.deploy(JsonFileStore(path), OWNER, list(PROPOSALS))
    ledger.vote(ADDR1, 0)
    ledger.vote(ADDR2, 2)

    reloaded = VotingLedger.load(JsonFileStore(path))
    assert reloaded.authority() == OWNER
    assert [reloaded.get_proposal(i).vote_count for i in range(3)] == [1, 0, 1]
    assert reloaded.has_voted(ADDR1)
    assert reloaded.has_voted(ADDR2)


def test_json_store_reset_leaves_voter_file_alone(tmp_path):
    path = str(tmp_path / "ledger_db.json")
    store = JsonFileStore(path)
    ledger = VotingLedger.deploy(store, OWNER, list(PROPOSALS))
    ledger.vote(ADDR1, 1)

    with open(store.voters_path) as f:
        before = f.read()
    stat_before = os.stat(store.voters_path).st_mtime_ns

    ledger.reset_votes(OWNER)

    with open(store.voters_path) as f:
        assert f.read() == before
    assert os.stat(store.voters_path).st_mtime_ns == stat_before
    with open(path) as f:
        assert json.load(f)["round"]["epoch"] == FIRST_EPOCH + 1
    assert not VotingLedger.load(JsonFileStore(path)).has_voted(ADDR1)


def test_json_store_refuses_corrupt_round_file(tmp_path):
    path = tmp_path / "ledger_db.json"
    path.write_text("{not json")
    with pytest.raises(json.JSONDecodeError):
        JsonFileStore(str(path)).load_round()
    assert path.read_text() == "{not json"


def test_json_store_refuses_corrupt_voter_file(tmp_path):
    path = str(tmp_path / "ledger_db.json")
    store = JsonFileStore(path)
    VotingLedger.deploy(store, OWNER, list(PROPOSALS)).vote(ADDR1, 0)

    with open(store.voters_path, "w") as f:
        f.write('{"0x')

    with pytest.raises(json.JSONDecodeError):
        VotingLedger.load(JsonFileStore(path))


def test_json_store_creates_missing_files(tmp_path):
    path = tmp_path / "ledger_db.json"
    store = JsonFileStore(str(path))
    assert store.load_round() is None
    assert json.loads(path.read_text()) == {"round": None}
    assert len(store.voter_table()) == 0


def test_voter_records_cannot_be_deleted(tmp_path):
    store = JsonFileStore(str(tmp_path / "ledger_db.json"))
    table = store.voter_table()
    table[ADDR1] = 1
    with pytest.raises(TypeError):
        del table[ADDR1]


def test_open_store_selects_backend(tmp_path, monkeypatch):
    assert isinstance(open_store("memory"), MemoryStore)
    monkeypatch.setattr("epochvote.database.LEDGER_DB_PATH", str(tmp_path / "db.json"))
    assert isinstance(open_store("json"), JsonFileStore)
    with pytest.raises(ValueError):
        open_store("sqlite")


def test_mongo_store_round_trip():
    mongomock = pytest.importorskip("mongomock")
    from epochvote.storage_mongo import MongoLedgerStore

    client = mongomock.MongoClient()
    store = MongoLedgerStore(client=client, db_name="test_ledger")
    ledger = VotingLedger.deploy(store, OWNER, list(PROPOSALS))
    ledger.vote(ADDR1, 0)
    ledger.reset_votes(OWNER)
    ledger.vote(ADDR2, 2)

    voters = client["test_ledger"]["voters"]
    assert voters.find_one({"_id": ADDR1})["last_voted_epoch"] == FIRST_EPOCH
    assert voters.find_one({"_id": ADDR2})["last_voted_epoch"] == FIRST_EPOCH + 1

    reloaded = VotingLedger.load(MongoLedgerStore(client=client, db_name="test_ledger"))
    assert reloaded.current_epoch() == FIRST_EPOCH + 1
    assert [reloaded.get_proposal(i).vote_count for i in range(3)] == [0, 0, 1]
    assert reloaded.has_voted(ADDR2)
    assert not reloaded.has_voted(ADDR1)
    assert len(store.voter_table()) == 2
