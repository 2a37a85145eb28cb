import pytest

from circumetal_app.config import Settings
from circumetal_app.errors import ConfigurationError

_ENV_VARS = [
    "LCA_AI_API_KEY", "DATABRICKS_TOKEN", "DATABRICKS_HOST", "DATABRICKS_CLIENT_ID",
    "DATABRICKS_CLIENT_SECRET", "LCA_AI_MODEL", "LCA_AI_MOCK_MODE", "LCA_AI_MAX_RETRIES",
    "LCA_AI_TIMEOUT_SECONDS", "LCA_AI_BACKOFF_SECONDS", "LCA_AI_MAX_TOKENS", "LCA_PERSIST_REPORTS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()
    assert settings.max_retries == 3
    assert settings.per_attempt_timeout == 15.0
    assert settings.mock_mode is False


def test_from_env_reads_values(monkeypatch):
    monkeypatch.setenv("LCA_AI_MOCK_MODE", "true")
    monkeypatch.setenv("LCA_AI_MAX_RETRIES", "5")
    monkeypatch.setenv("LCA_AI_TIMEOUT_SECONDS", "7.5")
    monkeypatch.setenv("DATABRICKS_HOST", "adb-1.azuredatabricks.net")
    settings = Settings.from_env()
    assert settings.mock_mode is True
    assert settings.max_retries == 5
    assert settings.per_attempt_timeout == 7.5
    assert settings.serving_base_url == "https://adb-1.azuredatabricks.net/serving-endpoints"


@pytest.mark.parametrize("value", ["0", "-1", "three"])
def test_invalid_retry_count_is_configuration_error(monkeypatch, value):
    monkeypatch.setenv("LCA_AI_MAX_RETRIES", value)
    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_settings_are_frozen():
    settings = Settings(mock_mode=True)
    with pytest.raises(Exception):
        settings.max_retries = 10


def test_credentials_required_outside_mock_mode():
    with pytest.raises(ConfigurationError):
        Settings().require_credentials()
    with pytest.raises(ConfigurationError):
        Settings(databricks_host="h").require_credentials()
    Settings(databricks_host="h", api_key="k").require_credentials()
    Settings(databricks_host="h", client_id="id", client_secret="secret").require_credentials()
    Settings(mock_mode=True).require_credentials()
