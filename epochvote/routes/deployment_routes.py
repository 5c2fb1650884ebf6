from fastapi import APIRouter, Request

deployment_router = APIRouter(tags=["Deployment"])


@deployment_router.get("/deployment.json")
def get_deployment(request: Request):
    """Deployment descriptor clients fetch before any ledger call."""
    return request.app.state.node.deployment.model_dump(by_alias=True)
