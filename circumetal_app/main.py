"""
CircuMetal LCA AI - application entry point

FastAPI application exposing the LCA AI endpoints (parameter suggestions,
sustainability reports, per-stage node insights). Configuration is read once
from the environment at startup and injected into the orchestrator.
"""
import json
import re
import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .api.routes import api_router
from .config import Settings
from .errors import InvalidRequestError
from .services.llm import Invoker, ResponseClient
from .services.orchestrator import Orchestrator, ReportSink
from .services.storage import DatabricksReportStorage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("circumetal-lca")

# ---------------------------------------------------------------------------
# Snake_case → camelCase API response middleware
# ---------------------------------------------------------------------------

_SNAKE_RE = re.compile(r"_([a-z])")


def _to_camel(snake: str) -> str:
    """Convert snake_case string to camelCase."""
    return _SNAKE_RE.sub(lambda m: m.group(1).upper(), snake)


def _convert_keys(obj):
    """Recursively convert all dict keys from snake_case to camelCase
    and serialize datetime objects to ISO 8601 strings."""
    if isinstance(obj, dict):
        return {_to_camel(k): _convert_keys(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_keys(item) for item in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


class CamelCaseMiddleware(BaseHTTPMiddleware):
    """Middleware that converts JSON API responses from snake_case to camelCase."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if not request.url.path.startswith("/api/"):
            return response

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return response

        body_chunks = []
        async for chunk in response.body_iterator:
            if isinstance(chunk, bytes):
                body_chunks.append(chunk)
            else:
                body_chunks.append(chunk.encode("utf-8"))
        body = b"".join(body_chunks)

        try:
            data = json.loads(body)
            converted = _convert_keys(data)
            new_body = json.dumps(converted, default=str)
            headers = dict(response.headers)
            headers.pop("content-length", None)  # Will be recalculated
            return Response(
                content=new_body,
                status_code=response.status_code,
                headers=headers,
                media_type="application/json",
            )
        except (json.JSONDecodeError, TypeError):
            # Not valid JSON or conversion failed, return as-is
            return Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=content_type,
            )


def create_app(
    settings: Optional[Settings] = None,
    invoke: Optional[Invoker] = None,
    sink: Optional[ReportSink] = None,
) -> FastAPI:
    """
    Build the application. Raises ConfigurationError before serving anything
    when credentials are missing outside mock mode.
    """
    settings = settings or Settings.from_env()
    settings.require_credentials()

    if sink is None and settings.persist_reports:
        sink = DatabricksReportStorage(settings)

    client = ResponseClient(settings, invoke=invoke)
    orchestrator = Orchestrator(client, sink=sink)

    app = FastAPI(
        title="CircuMetal LCA AI",
        description="AI-assisted Life Cycle Assessment for mining and metallurgy processes",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    app.add_middleware(CamelCaseMiddleware)
    app.include_router(api_router)

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        logger.info("Rejected request to %s: %s", request.url.path, str(exc))
        return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed body on %s", request.url.path)
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid request body."})

    logger.info("CircuMetal LCA AI starting up...")
    logger.info("Model: %s", settings.model)
    logger.info("Mock mode: %s", settings.mock_mode)
    logger.info(
        "Retry policy: %d attempts, %.1fs timeout per attempt",
        settings.max_retries, settings.per_attempt_timeout,
    )
    logger.info("Report persistence: %s", "enabled" if sink is not None else "disabled")

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
