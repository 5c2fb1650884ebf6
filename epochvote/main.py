# main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from epochvote.chain import LedgerNode, run_miner
from epochvote.config import BLOCK_INTERVAL, CORS_ORIGINS, DEPLOYMENT_PATH
from epochvote.database import open_store
from epochvote.deploy import load_or_deploy
from epochvote.routes.deployment_routes import deployment_router
from epochvote.routes.ledger_routes import ledger_router

logger = logging.getLogger(__name__)


def build_node(block_interval: float = BLOCK_INTERVAL) -> LedgerNode:
    store = open_store()
    ledger, deployment = load_or_deploy(store, deployment_path=DEPLOYMENT_PATH)
    return LedgerNode(ledger, deployment, automine=block_interval <= 0)


def create_app(node: Optional[LedgerNode] = None, block_interval: float = BLOCK_INTERVAL) -> FastAPI:
    if node is None:
        node = build_node(block_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        miner = None
        if not node.automine and block_interval > 0:
            logger.info(f"Mining a block every {block_interval}s")
            miner = asyncio.create_task(run_miner(node, block_interval))
        yield
        if miner is not None:
            miner.cancel()

    app = FastAPI(title="Epoch Voting Ledger API", lifespan=lifespan)
    app.state.node = node

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(deployment_router)
    app.include_router(ledger_router)

    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "healthy", "epoch": node.current_epoch(), "block": node.block_number}

    return app


def run():
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
