# epochvote/deploy.py
"""
Deploy a voting ledger and publish its deployment descriptor.

    python -m epochvote.deploy --proposal "Proposal A" --proposal "Proposal B"
"""
import argparse
import json
import logging
import os
from typing import List, Optional, Tuple

from epochvote.config import AUTHORITY_ADDRESS, CHAIN_ID, DEPLOYMENT_PATH, LEDGER_STORE, NETWORK_NAME, PROPOSALS
from epochvote.database import open_store
from epochvote.ledger import VotingLedger
from epochvote.models.deployment_model import DeploymentInfo
from epochvote.security import ledger_address

logger = logging.getLogger(__name__)


def write_deployment(info: DeploymentInfo, path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(info.model_dump(by_alias=True), f, indent=2)


def deploy(
    store,
    authority: str,
    proposals: List[str],
    network: str = NETWORK_NAME,
    chain_id: int = CHAIN_ID,
    deployment_path: Optional[str] = None,
) -> Tuple[VotingLedger, DeploymentInfo]:
    ledger = VotingLedger.deploy(store, authority, proposals)
    info = DeploymentInfo(
        address=ledger_address(ledger.authority(), proposals),
        authority=ledger.authority(),
        proposals=proposals,
        network=network,
        chain_id=chain_id,
    )
    if deployment_path:
        write_deployment(info, deployment_path)
        logger.info(f"Deployment info saved to {deployment_path}")
    return ledger, info


def load_or_deploy(
    store,
    authority: str = AUTHORITY_ADDRESS,
    proposals: Optional[List[str]] = None,
    network: str = NETWORK_NAME,
    chain_id: int = CHAIN_ID,
    deployment_path: Optional[str] = None,
) -> Tuple[VotingLedger, DeploymentInfo]:
    """Reuse the ledger already in ``store``, deploying a fresh one when it is empty."""
    ledger = VotingLedger.load(store)
    if ledger is None:
        return deploy(store, authority, proposals if proposals is not None else PROPOSALS,
                      network, chain_id, deployment_path)

    names = [p.name for p in ledger.voting_round().proposals]
    info = DeploymentInfo(
        address=ledger_address(ledger.authority(), names),
        authority=ledger.authority(),
        proposals=names,
        network=network,
        chain_id=chain_id,
    )
    if deployment_path:
        write_deployment(info, deployment_path)
    return ledger, info


def main(argv=None):
    parser = argparse.ArgumentParser(description="Deploy a voting ledger")
    parser.add_argument("--authority", default=AUTHORITY_ADDRESS, help="address allowed to reset votes")
    parser.add_argument("--proposal", action="append", dest="proposals", help="proposal name (repeatable)")
    parser.add_argument("--network", default=NETWORK_NAME)
    parser.add_argument("--chain-id", type=int, default=CHAIN_ID)
    parser.add_argument("--store", default=LEDGER_STORE, choices=["memory", "json", "mongo"])
    parser.add_argument("--out", default=DEPLOYMENT_PATH, help="where to write deployment.json")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    logger.info("Deploying voting ledger...")

    store = open_store(args.store)
    ledger, info = deploy(
        store,
        args.authority,
        args.proposals or PROPOSALS,
        network=args.network,
        chain_id=args.chain_id,
        deployment_path=args.out,
    )

    logger.info(f"Voting ledger deployed to: {info.address}")
    for i in range(ledger.get_proposal_count()):
        proposal = ledger.get_proposal(i)
        logger.info(f"   {i}: {proposal.name} ({proposal.vote_count} votes)")
    logger.info(f"Authority: {info.authority}")
    return info


if __name__ == "__main__":
    main()
