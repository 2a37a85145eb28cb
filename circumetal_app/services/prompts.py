import logging
from typing import Optional

from ..knowledge_base.default_prompts import DEFAULT_PROMPTS, PromptKey
from ..knowledge_base.stage_library import (
    CANDIDATE_PARAMETERS,
    filter_parameters_for_stage,
    stage_label,
)
from ..models.schemas import RequestKind

logger = logging.getLogger(__name__)

PROMPT_KEY_BY_KIND: dict[RequestKind, PromptKey] = {
    RequestKind.SUGGEST_MISSING_PARAMETERS: "suggest_parameters",
    RequestKind.GENERATE_REPORT: "generate_report",
    RequestKind.GENERATE_NODE_INSIGHT: "node_insight",
}


def _format_value(value) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return None


def build_parameter_data_string(params: Optional[dict]) -> str:
    if not isinstance(params, dict) or not params:
        return "  (no parameters provided)"

    lines = []
    for key, value in params.items():
        rendered = _format_value(value)
        if rendered is None or rendered == "":
            continue
        lines.append(f"  {key}: {rendered}")

    if not lines:
        return "  (no parameters provided)"
    return "\n".join(lines)


def build_prompt(kind: RequestKind, params: Optional[dict], stage: Optional[str] = None) -> str:
    template = DEFAULT_PROMPTS[PROMPT_KEY_BY_KIND[RequestKind(kind)]]["template"]
    params = params if isinstance(params, dict) else {}

    if kind == RequestKind.GENERATE_NODE_INSIGHT:
        relevant = filter_parameters_for_stage(params, stage)
        logger.debug(
            "LCA AI: Node insight prompt for stage %r uses %d of %d parameters",
            stage, len(relevant), len(params),
        )
        return (
            template
            .replace("{{STAGE}}", stage_label(stage))
            .replace("{{PARAMETERS}}", build_parameter_data_string(relevant))
        )

    prompt = template.replace("{{PARAMETERS}}", build_parameter_data_string(params))
    if kind == RequestKind.SUGGEST_MISSING_PARAMETERS:
        prompt = prompt.replace("{{CANDIDATES}}", ", ".join(f"'{c}'" for c in CANDIDATE_PARAMETERS))
    return prompt
