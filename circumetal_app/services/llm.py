import json
import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

import openai
from openai import OpenAI
from databricks.sdk.core import Config, oauth_service_principal

from ..config import Settings
from ..errors import ConfigurationError, TransientServiceError
from ..models.schemas import RequestKind

logger = logging.getLogger(__name__)

Invoker = Callable[[str, float], str]

MOCK_RESPONSES: dict[RequestKind, str] = {
    RequestKind.SUGGEST_MISSING_PARAMETERS: json.dumps({
        "energyConsumptionKwh": 3500,
        "waterUsageLiters": 12000,
        "transportDistanceKm": 250,
        "recycledContentPercentage": 30,
    }),
    RequestKind.GENERATE_REPORT: json.dumps({
        "summary": (
            "Mock assessment: the process is energy intensive in its smelting and refining steps, "
            "with moderate water use and limited recycled feedstock."
        ),
        "recommendations": [
            "Source at least 40% of process electricity from renewable contracts.",
            "Raise recycled scrap input to reduce primary ore demand.",
            "Recirculate process water through a closed-loop treatment circuit.",
        ],
    }),
    RequestKind.GENERATE_NODE_INSIGHT: json.dumps({
        "circularOpportunities": (
            "Mock insight: recover process residues and scrap at this stage for reintroduction upstream. "
            "Track recovered tonnage against the recorded throughput."
        ),
        "environmentalImpacts": (
            "Mock insight: energy use and associated emissions dominate the footprint of this stage. "
            "Water withdrawal is a secondary concern."
        ),
    }),
}

# Returned once every attempt against the upstream service has failed. These
# are static on purpose; parameter-aware substitutes come from services.fallback.
DEGRADED_RESPONSES: dict[RequestKind, str] = {
    RequestKind.SUGGEST_MISSING_PARAMETERS: json.dumps({}),
    RequestKind.GENERATE_REPORT: json.dumps({
        "summary": (
            "The AI assessment service is temporarily unavailable, so this report contains general "
            "guidance for metallurgical processes rather than an analysis of the submitted data."
        ),
        "recommendations": [
            "Prioritise renewable electricity for the most energy-intensive process steps.",
            "Increase the share of recycled material in the feedstock.",
            "Review water recirculation and waste handling practices.",
            "Re-run the assessment once the AI service is available for data-specific advice.",
        ],
    }),
    RequestKind.GENERATE_NODE_INSIGHT: json.dumps({
        "circularOpportunities": (
            "Stage-specific analysis is temporarily unavailable. Look for material that leaves this "
            "stage as waste and could be recovered or reused."
        ),
        "environmentalImpacts": (
            "Stage-specific analysis is temporarily unavailable. Energy consumption and emissions "
            "are typically the dominant impacts for metallurgical stages."
        ),
    }),
}


@dataclass(frozen=True)
class AttemptSuccess:
    raw_text: str


@dataclass(frozen=True)
class AttemptFailure:
    cause: Exception


@dataclass(frozen=True)
class AttemptTimeout:
    pass


ClientAttemptOutcome = Union[AttemptSuccess, AttemptFailure, AttemptTimeout]


@dataclass(frozen=True)
class ClientResponse:
    text: str
    degraded: bool = False


def _databricks_config(settings: Settings) -> Config:
    host = settings.databricks_host
    return Config(
        host=f"https://{host}" if not host.startswith("https://") else host,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
    )


def make_databricks_invoker(settings: Settings) -> Invoker:
    """
    Build the model-calling primitive: one chat completion against a Databricks
    model serving endpoint through the OpenAI-compatible API.

    Uses the configured API key when present, otherwise a service-principal
    OAuth token from databricks-sdk (the header factory refreshes it itself).
    """
    settings.require_credentials()

    header_factory = None
    if not settings.api_key:
        header_factory = oauth_service_principal(_databricks_config(settings))

    def _token() -> str:
        if settings.api_key:
            return settings.api_key
        headers = header_factory()
        token = headers.get("Authorization", "").replace("Bearer ", "")
        if not token:
            raise ConfigurationError("Failed to obtain Databricks OAuth token")
        return token

    def invoke(prompt: str, timeout: float) -> str:
        client = OpenAI(
            api_key=_token(),
            base_url=settings.serving_base_url,
            max_retries=0,
        )
        response = client.chat.completions.create(
            model=settings.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=settings.max_tokens,
            timeout=timeout,
        )
        content = response.choices[0].message.content or ""

        prompt_tokens = response.usage.prompt_tokens if response.usage else None
        completion_tokens = response.usage.completion_tokens if response.usage else None
        logger.info(
            "LCA AI: Response from %s - prompt_tokens=%s completion_tokens=%s",
            settings.model, prompt_tokens, completion_tokens,
        )
        return content

    return invoke


class ResponseClient:
    """
    Sends prompts to the upstream model with a per-attempt deadline and
    exponential backoff between attempts.

    get_response() never raises: after max_retries failed attempts it returns
    the static degraded JSON for the request kind. In mock mode the network is
    never touched.
    """

    def __init__(
        self,
        settings: Settings,
        invoke: Optional[Invoker] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self._sleep = sleep
        if invoke is None and not settings.mock_mode:
            invoke = make_databricks_invoker(settings)
        self._invoke = invoke

    def dispatch(self, prompt: str, kind: RequestKind) -> ClientAttemptOutcome:
        if self.settings.mock_mode:
            return AttemptSuccess(raw_text=MOCK_RESPONSES[RequestKind(kind)])
        try:
            text = self._invoke(prompt, self.settings.per_attempt_timeout)
        except (openai.APITimeoutError, TimeoutError):
            return AttemptTimeout()
        except Exception as e:
            return AttemptFailure(cause=e)

        if not isinstance(text, str) or not text.strip():
            return AttemptFailure(cause=TransientServiceError("Empty completion from model"))
        return AttemptSuccess(raw_text=text)

    def backoff_delay(self, attempt: int) -> float:
        return self.settings.backoff_base * (2 ** attempt)

    def get_response(self, prompt: str, kind: RequestKind) -> str:
        return self.request(prompt, kind).text

    def request(self, prompt: str, kind: RequestKind) -> ClientResponse:
        kind = RequestKind(kind)
        if self.settings.mock_mode:
            logger.info("LCA AI: Mock mode, returning canned %s response", kind.value)
            return ClientResponse(text=MOCK_RESPONSES[kind])

        max_retries = self.settings.max_retries
        for attempt in range(max_retries):
            outcome = self.dispatch(prompt, kind)

            if isinstance(outcome, AttemptSuccess):
                logger.info(
                    "LCA AI: Attempt %d/%d for %s succeeded (%d chars)",
                    attempt + 1, max_retries, kind.value, len(outcome.raw_text),
                )
                return ClientResponse(text=outcome.raw_text)

            if isinstance(outcome, AttemptTimeout):
                logger.warning(
                    "LCA AI: Attempt %d/%d for %s timed out after %.1fs",
                    attempt + 1, max_retries, kind.value, self.settings.per_attempt_timeout,
                )
            else:
                logger.warning(
                    "LCA AI: Attempt %d/%d for %s failed: %s: %s",
                    attempt + 1, max_retries, kind.value,
                    type(outcome.cause).__name__, str(outcome.cause)[:200],
                )

            if attempt < max_retries - 1:
                delay = self.backoff_delay(attempt)
                logger.info("LCA AI: Retrying in %.1fs", delay)
                self._sleep(delay)

        logger.error(
            "LCA AI: All %d attempts for %s failed, returning degraded response",
            max_retries, kind.value,
        )
        return ClientResponse(text=DEGRADED_RESPONSES[kind], degraded=True)
