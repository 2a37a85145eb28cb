import logging
from typing import Any

from ..errors import InvalidRequestError

logger = logging.getLogger(__name__)

SUPPORTED_VALUE_TYPES = (bool, int, float, str)


def validate_process_parameters(params: Any) -> dict:
    """
    Check that caller-supplied process parameters form a JSON object.

    Entries with unsupported value types (nested objects, lists, null) are
    dropped rather than rejected, since the parameter bag is open-ended.
    """
    if params is None or not isinstance(params, dict):
        raise InvalidRequestError("Invalid formData provided.")

    cleaned = {}
    skipped = []
    for key, value in params.items():
        if isinstance(key, str) and isinstance(value, SUPPORTED_VALUE_TYPES):
            cleaned[key] = value
        else:
            skipped.append(str(key))
    if skipped:
        logger.info("Validation: Ignoring parameters with unsupported values: %s", ", ".join(skipped))
    return cleaned


def validate_report_parameters(params: Any) -> dict:
    cleaned = validate_process_parameters(params)
    if not cleaned:
        raise InvalidRequestError("Complete formData is required for recommendations.")
    return cleaned


def _require_text(value: Any, field: str) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{field} is required.")
    return value.strip()


def validate_node_insight_request(node_id: Any, stage: Any, params: Any) -> tuple[str, str, dict]:
    node_id = _require_text(node_id, "nodeId")
    stage = _require_text(stage, "stage")
    return node_id, stage, validate_process_parameters(params)
