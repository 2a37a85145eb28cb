import logging
from typing import Optional, Protocol

from ..api.validation import (
    validate_node_insight_request,
    validate_process_parameters,
    validate_report_parameters,
)
from ..models.schemas import OrchestrationResult, ProcessParameters, RequestKind
from .fallback import synthesize
from .llm import ResponseClient
from .prompts import build_prompt
from .response_parser import parse_response, validate_payload

logger = logging.getLogger(__name__)

FALLBACK_WARNING = (
    "The AI response could not be interpreted, so a rule-based substitute was generated."
)
DEGRADED_WARNING = (
    "The AI service was unavailable after several attempts, so general guidance was returned."
)
PERSISTENCE_WARNING = "The report could not be saved and is not available in report history."


class ReportSink(Protocol):
    def save_report(self, params: dict, report: dict) -> str:
        ...


def _combine_warnings(*warnings: Optional[str]) -> Optional[str]:
    present = [w for w in warnings if w]
    if not present:
        return None
    return " ".join(present)


class Orchestrator:
    """
    Composes prompt building, dispatch, parsing and fallback synthesis for the
    three LCA AI request kinds.

    run() raises InvalidRequestError for parameters that are not an object.
    Past that check it never raises: unparseable model output is replaced by
    a deterministic fallback payload.
    """

    def __init__(self, client: ResponseClient, sink: Optional[ReportSink] = None):
        self.client = client
        self.sink = sink

    def run(self, kind: RequestKind, params: ProcessParameters, stage: Optional[str] = None) -> OrchestrationResult:
        kind = RequestKind(kind)
        snapshot = validate_process_parameters(params)
        prompt = build_prompt(kind, snapshot, stage)
        logger.info("LCA AI: Dispatching %s (prompt %d chars)", kind.value, len(prompt))

        response = self.client.request(prompt, kind)
        try:
            payload = validate_payload(kind, parse_response(response.text))
        except Exception as e:
            logger.warning(
                "LCA AI: Could not use model response for %s (%s: %s). Raw response: %s",
                kind.value, type(e).__name__, str(e)[:200], response.text[:500],
            )
            return OrchestrationResult(
                kind=kind,
                payload=synthesize(kind, snapshot, stage),
                used_fallback=True,
                degraded=response.degraded,
            )

        return OrchestrationResult(kind=kind, payload=payload, used_fallback=False, degraded=response.degraded)

    def _warning_for(self, result: OrchestrationResult) -> Optional[str]:
        if result.used_fallback:
            return FALLBACK_WARNING
        if result.degraded:
            return DEGRADED_WARNING
        return None

    def suggest_parameters(self, params) -> dict:
        params = validate_process_parameters(params)
        logger.info("LCA AI: Suggesting missing parameters for %d provided values", len(params))

        result = self.run(RequestKind.SUGGEST_MISSING_PARAMETERS, params)
        body = {"success": True, "suggestions": result.payload_dict()}
        warning = self._warning_for(result)
        if warning:
            body["warning"] = warning
        return body

    def generate_recommendations(self, params) -> dict:
        params = validate_report_parameters(params)
        logger.info("LCA AI: Generating recommendations for %d parameters", len(params))

        result = self.run(RequestKind.GENERATE_REPORT, params)
        report = result.payload_dict()
        body = {"success": True, "report": report}

        persistence_warning = None
        if self.sink is not None:
            try:
                body["report_id"] = self.sink.save_report(dict(params), report)
                logger.info("LCA AI: Report persisted with id %s", body["report_id"])
            except Exception as e:
                logger.error("LCA AI: Failed to persist report: %s", str(e))
                persistence_warning = PERSISTENCE_WARNING

        warning = _combine_warnings(self._warning_for(result), persistence_warning)
        if warning:
            body["warning"] = warning
        return body

    def get_node_insight(self, node_id, stage, params) -> dict:
        node_id, stage, params = validate_node_insight_request(node_id, stage, params)
        logger.info("LCA AI: Generating insight for node %s (stage %s)", node_id, stage)

        result = self.run(RequestKind.GENERATE_NODE_INSIGHT, params, stage)
        body = {
            "success": True,
            "node_id": node_id,
            "stage": stage,
            "insights": result.payload_dict(),
        }
        warning = self._warning_for(result)
        if warning:
            body["warning"] = warning
        return body
