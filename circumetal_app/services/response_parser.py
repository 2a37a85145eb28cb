import re
import math
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import MalformedResponseError
from ..knowledge_base.stage_library import CANDIDATE_PARAMETERS
from ..models.schemas import NodeInsight, RecommendationReport, RequestKind

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def _extract_object_substring(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _reject_constant(name: str):
    raise MalformedResponseError(f"Non-finite number {name} in model response")


def _loads_object(text: str) -> Optional[dict]:
    parsed = json.loads(text, parse_constant=_reject_constant)
    if not isinstance(parsed, dict):
        return None
    return parsed


def parse_response(raw: str) -> dict:
    """
    Recover a single JSON object from raw model output.

    Fences are stripped first, then a strict parse is tried, then the span
    from the first '{' to the last '}'. Anything that is not a JSON object,
    or that contains NaN or Infinity, raises MalformedResponseError.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedResponseError("Empty response from model")

    cleaned = strip_code_fences(raw)
    try:
        parsed = _loads_object(cleaned)
    except json.JSONDecodeError:
        parsed = None
    if parsed is not None:
        return parsed

    candidate = _extract_object_substring(cleaned)
    if candidate is None:
        raise MalformedResponseError("No JSON object found in model response")
    try:
        parsed = _loads_object(candidate)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Embedded JSON object is invalid: {e}") from e
    if parsed is None:
        raise MalformedResponseError("Embedded JSON value is not an object")
    return parsed


def _is_scalar(value) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (bool, int, str))


def _validate_suggestions(parsed: dict) -> dict:
    suggestions = {}
    dropped = []
    for key, value in parsed.items():
        if key in CANDIDATE_PARAMETERS and _is_scalar(value):
            suggestions[key] = value
        else:
            dropped.append(key)
    if dropped:
        logger.info("LCA AI: Ignoring non-candidate suggestions: %s", ", ".join(map(str, dropped)))
    return suggestions


def _validate_report(parsed: dict) -> RecommendationReport:
    summary = parsed.get("summary") or parsed.get("lca_summary")
    recommendations = parsed.get("recommendations")
    if not isinstance(summary, str) or not summary.strip():
        raise MalformedResponseError("Report is missing a summary")
    if not isinstance(recommendations, list):
        raise MalformedResponseError("Report is missing a recommendations list")

    items = [str(r).strip() for r in recommendations if isinstance(r, (str, int, float))]
    try:
        return RecommendationReport(summary=summary, recommendations=items)
    except ValidationError as e:
        raise MalformedResponseError(f"Report failed validation: {e}") from e


def _validate_node_insight(parsed: dict) -> NodeInsight:
    circular = parsed.get("circularOpportunities") or parsed.get("circular_opportunities")
    impacts = parsed.get("environmentalImpacts") or parsed.get("environmental_impacts")
    try:
        return NodeInsight(circular_opportunities=circular, environmental_impacts=impacts)
    except ValidationError as e:
        raise MalformedResponseError(f"Node insight failed validation: {e}") from e


def validate_payload(kind: RequestKind, parsed: Any):
    if not isinstance(parsed, dict):
        raise MalformedResponseError("Parsed response is not an object")

    kind = RequestKind(kind)
    if kind == RequestKind.SUGGEST_MISSING_PARAMETERS:
        return _validate_suggestions(parsed)
    if kind == RequestKind.GENERATE_REPORT:
        return _validate_report(parsed)
    return _validate_node_insight(parsed)
