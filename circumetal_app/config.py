import os
import logging
from typing import Optional

from pydantic import BaseModel, Field

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "databricks-gemini-2-5-flash"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


class Settings(BaseModel):
    """
    Process-wide configuration for the AI layer.

    Built once at startup (usually via Settings.from_env()) and passed into the
    app and the response client. Instances are frozen.
    """

    model_config = {"frozen": True}

    api_key: Optional[str] = None
    databricks_host: str = ""
    client_id: str = ""
    client_secret: str = ""
    model: str = DEFAULT_MODEL
    mock_mode: bool = False
    max_retries: int = Field(default=3, ge=1)
    per_attempt_timeout: float = Field(default=15.0, gt=0)
    backoff_base: float = Field(default=1.0, ge=0)
    max_tokens: int = Field(default=2048, ge=1)
    persist_reports: bool = False
    catalog: str = "circumetal"
    http_path: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        try:
            return cls(
                api_key=os.environ.get("LCA_AI_API_KEY") or os.environ.get("DATABRICKS_TOKEN") or None,
                databricks_host=os.environ.get("DATABRICKS_HOST", ""),
                client_id=os.environ.get("DATABRICKS_CLIENT_ID", ""),
                client_secret=os.environ.get("DATABRICKS_CLIENT_SECRET", ""),
                model=os.environ.get("LCA_AI_MODEL") or DEFAULT_MODEL,
                mock_mode=_env_flag("LCA_AI_MOCK_MODE"),
                max_retries=_env_number("LCA_AI_MAX_RETRIES", 3, int),
                per_attempt_timeout=_env_number("LCA_AI_TIMEOUT_SECONDS", 15.0, float),
                backoff_base=_env_number("LCA_AI_BACKOFF_SECONDS", 1.0, float),
                max_tokens=_env_number("LCA_AI_MAX_TOKENS", 2048, int),
                persist_reports=_env_flag("LCA_PERSIST_REPORTS"),
                catalog=os.environ.get("DATABRICKS_CATALOG", "circumetal"),
                http_path=os.environ.get("DATABRICKS_HTTP_PATH", ""),
            )
        except ValueError as e:
            # pydantic.ValidationError is a ValueError
            raise ConfigurationError(f"Invalid AI configuration: {e}") from e

    @property
    def serving_base_url(self) -> str:
        host = self.databricks_host
        if host and not host.startswith("https://"):
            host = f"https://{host}"
        return f"{host}/serving-endpoints"

    @property
    def has_service_principal(self) -> bool:
        return bool(self.databricks_host and self.client_id and self.client_secret)

    def require_credentials(self) -> None:
        if self.mock_mode:
            logger.info("LCA AI: mock mode enabled, upstream credentials not required")
            return
        if not self.databricks_host:
            raise ConfigurationError(
                "DATABRICKS_HOST is not set. Set it, or enable LCA_AI_MOCK_MODE for offline use."
            )
        if not self.api_key and not self.has_service_principal:
            raise ConfigurationError(
                "AI credentials not configured. Set LCA_AI_API_KEY, or "
                "DATABRICKS_CLIENT_ID and DATABRICKS_CLIENT_SECRET."
            )
