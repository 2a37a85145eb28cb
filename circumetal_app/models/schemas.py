"""
Pydantic models for the LCA AI layer: request bodies accepted at the API
boundary, the three payload shapes produced by the orchestrator, and the
orchestration result handed back to callers.
"""
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

ParameterValue = Union[bool, int, float, str]
ProcessParameters = dict[str, ParameterValue]
SuggestionSet = dict[str, ParameterValue]


class RequestKind(str, Enum):
    SUGGEST_MISSING_PARAMETERS = "suggest_missing_parameters"
    GENERATE_REPORT = "generate_report"
    GENERATE_NODE_INSIGHT = "generate_node_insight"


def _non_blank(value: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


class RecommendationReport(BaseModel):
    summary: str = Field(alias="lca_summary")
    recommendations: list[str]

    model_config = {"populate_by_name": True}

    @field_validator("summary")
    @classmethod
    def _summary_present(cls, v: str) -> str:
        return _non_blank(v)

    @field_validator("recommendations")
    @classmethod
    def _recommendations_present(cls, v: list[str]) -> list[str]:
        cleaned = [item.strip() for item in v if isinstance(item, str) and item.strip()]
        if not cleaned:
            raise ValueError("recommendations must contain at least one entry")
        return cleaned


class NodeInsight(BaseModel):
    circular_opportunities: str = Field(alias="circularOpportunities")
    environmental_impacts: str = Field(alias="environmentalImpacts")

    model_config = {"populate_by_name": True}

    @field_validator("circular_opportunities", "environmental_impacts")
    @classmethod
    def _text_present(cls, v: str) -> str:
        return _non_blank(v)


class OrchestrationResult(BaseModel):
    kind: RequestKind
    payload: Any
    used_fallback: bool = False
    degraded: bool = False

    model_config = {"frozen": True}

    def payload_dict(self) -> dict:
        if isinstance(self.payload, BaseModel):
            return self.payload.model_dump()
        return dict(self.payload)


class ParametersRequest(BaseModel):
    form_data: Optional[Any] = Field(default=None, alias="formData")

    model_config = {"populate_by_name": True}


class NodeInsightRequest(BaseModel):
    node_id: Optional[Any] = Field(default=None, alias="nodeId")
    stage: Optional[Any] = None
    form_data: Optional[Any] = Field(default=None, alias="formData")

    model_config = {"populate_by_name": True}
