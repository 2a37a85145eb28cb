import pytest

from circumetal_app.config import Settings


@pytest.fixture
def live_settings():
    return Settings(
        api_key="test-token",
        databricks_host="example.cloud.databricks.com",
        max_retries=3,
        per_attempt_timeout=15.0,
        backoff_base=1.0,
    )


@pytest.fixture
def mock_settings():
    return Settings(mock_mode=True)


class ScriptedInvoker:
    """Model primitive that replays a fixed script of texts and exceptions."""

    def __init__(self, script):
        self._script = list(script)
        self.calls = []

    def __call__(self, prompt, timeout):
        self.calls.append((prompt, timeout))
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleeper():
    return RecordingSleep()
