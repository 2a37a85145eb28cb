import logging

from fastapi import APIRouter, Depends, Request

from ..models.schemas import NodeInsightRequest, ParametersRequest
from ..services.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api")


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


@api_router.get("/health")
def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "running",
        "model": settings.model,
        "mock_mode": settings.mock_mode,
        "persist_reports": settings.persist_reports,
    }


# ---------------------------------------------------------------------------
# LCA AI endpoints
# ---------------------------------------------------------------------------
# Handlers are sync so FastAPI runs them in its threadpool; the response
# client blocks on the model call and on backoff sleeps.


@api_router.post("/lca/suggest-parameters")
def suggest_parameters(body: ParametersRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    return orchestrator.suggest_parameters(body.form_data)


@api_router.post("/lca/generate-recommendations")
def generate_recommendations(body: ParametersRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    return orchestrator.generate_recommendations(body.form_data)


@api_router.post("/lca/node-insight")
def get_node_insight(body: NodeInsightRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    return orchestrator.get_node_insight(body.node_id, body.stage, body.form_data)
