# epochvote/config.py
# Central place for settings and constants
import os
import json
from dotenv import load_dotenv

load_dotenv()

# Ledger store backend: memory | json | mongo
LEDGER_STORE = os.getenv("LEDGER_STORE", "memory").lower()

# JSON file store path (used when LEDGER_STORE=json)
LEDGER_DB_PATH = os.getenv("LEDGER_DB_PATH", "data/ledger_db.json")

# MongoDB (used when LEDGER_STORE=mongo)
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "voting_ledger")

# Deployment descriptor published for clients
DEPLOYMENT_PATH = os.getenv("DEPLOYMENT_PATH", "deployment.json")
NETWORK_NAME = os.getenv("NETWORK_NAME", "localhost")
CHAIN_ID = int(os.getenv("CHAIN_ID", "1337"))

# First Hardhat test account; override for any real deployment
AUTHORITY_ADDRESS = os.getenv("AUTHORITY_ADDRESS", "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266")

DEFAULT_PROPOSALS = [
    "Proposal A: Increase Community Fund",
    "Proposal B: Implement New Feature",
    "Proposal C: Change Governance Rules",
]
PROPOSALS = json.loads(os.getenv("PROPOSALS_JSON", json.dumps(DEFAULT_PROPOSALS)))

# Seconds between mined blocks; 0 mines every transaction on arrival
BLOCK_INTERVAL = float(os.getenv("BLOCK_INTERVAL", "0"))

# Client side
LEDGER_API_URL = os.getenv("LEDGER_API_URL", "http://127.0.0.1:8000")
CONFIRMATION_TIMEOUT = float(os.getenv("CONFIRMATION_TIMEOUT", "30"))
RECEIPT_POLL_INTERVAL = float(os.getenv("RECEIPT_POLL_INTERVAL", "0.5"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]
