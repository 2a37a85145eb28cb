import json
import logging

import httpx
import openai
import pytest

from circumetal_app.config import Settings
from circumetal_app.models.schemas import RequestKind
from circumetal_app.services.llm import (
    DEGRADED_RESPONSES,
    MOCK_RESPONSES,
    AttemptFailure,
    AttemptSuccess,
    AttemptTimeout,
    ResponseClient,
)

from conftest import ScriptedInvoker


def _timeout_error():
    return openai.APITimeoutError(request=httpx.Request("POST", "https://example.test/serving-endpoints"))


def test_dispatch_success(live_settings, sleeper):
    invoker = ScriptedInvoker(['{"a": 1}'])
    client = ResponseClient(live_settings, invoke=invoker, sleep=sleeper)
    outcome = client.dispatch("prompt", RequestKind.GENERATE_REPORT)
    assert outcome == AttemptSuccess(raw_text='{"a": 1}')
    assert invoker.calls == [("prompt", 15.0)]


def test_dispatch_classifies_timeouts(live_settings, sleeper):
    client = ResponseClient(live_settings, invoke=ScriptedInvoker([_timeout_error()]), sleep=sleeper)
    assert isinstance(client.dispatch("p", RequestKind.GENERATE_REPORT), AttemptTimeout)

    client = ResponseClient(live_settings, invoke=ScriptedInvoker([TimeoutError("slow")]), sleep=sleeper)
    assert isinstance(client.dispatch("p", RequestKind.GENERATE_REPORT), AttemptTimeout)


def test_dispatch_classifies_failures_and_empty_text(live_settings, sleeper):
    client = ResponseClient(live_settings, invoke=ScriptedInvoker([RuntimeError("boom")]), sleep=sleeper)
    outcome = client.dispatch("p", RequestKind.GENERATE_REPORT)
    assert isinstance(outcome, AttemptFailure)
    assert str(outcome.cause) == "boom"

    client = ResponseClient(live_settings, invoke=ScriptedInvoker(["   "]), sleep=sleeper)
    assert isinstance(client.dispatch("p", RequestKind.GENERATE_REPORT), AttemptFailure)


def test_permanent_failure_makes_exactly_three_attempts(live_settings, sleeper, caplog):
    invoker = ScriptedInvoker([RuntimeError("service down")])
    client = ResponseClient(live_settings, invoke=invoker, sleep=sleeper)

    with caplog.at_level(logging.WARNING):
        text = client.get_response("p", RequestKind.GENERATE_REPORT)

    assert len(invoker.calls) == 3
    assert sleeper.delays == [1.0, 2.0]
    assert text == DEGRADED_RESPONSES[RequestKind.GENERATE_REPORT]
    assert any("Attempt 1/3" in record.message for record in caplog.records)


def test_degraded_response_is_flagged(live_settings, sleeper):
    client = ResponseClient(live_settings, invoke=ScriptedInvoker([_timeout_error()]), sleep=sleeper)
    response = client.request("p", RequestKind.GENERATE_NODE_INSIGHT)
    assert response.degraded is True
    assert json.loads(response.text).keys() == {"circularOpportunities", "environmentalImpacts"}


def test_recovers_after_transient_failure(live_settings, sleeper):
    invoker = ScriptedInvoker([RuntimeError("503"), _timeout_error(), '{"ok": true}'])
    client = ResponseClient(live_settings, invoke=invoker, sleep=sleeper)
    response = client.request("p", RequestKind.SUGGEST_MISSING_PARAMETERS)
    assert response.text == '{"ok": true}'
    assert response.degraded is False
    assert len(invoker.calls) == 3
    assert sleeper.delays == [1.0, 2.0]


def test_single_attempt_never_sleeps(sleeper):
    settings = Settings(api_key="k", databricks_host="h", max_retries=1)
    invoker = ScriptedInvoker([RuntimeError("down")])
    client = ResponseClient(settings, invoke=invoker, sleep=sleeper)
    client.get_response("p", RequestKind.SUGGEST_MISSING_PARAMETERS)
    assert len(invoker.calls) == 1
    assert sleeper.delays == []


def test_mock_mode_never_invokes(mock_settings, sleeper):
    invoker = ScriptedInvoker([RuntimeError("should not be called")])
    client = ResponseClient(mock_settings, invoke=invoker, sleep=sleeper)
    for kind in RequestKind:
        assert client.get_response("p", kind) == MOCK_RESPONSES[kind]
    assert invoker.calls == []
    assert sleeper.delays == []


@pytest.mark.parametrize("kind", list(RequestKind))
def test_mock_mode_dispatch_returns_canned_text(mock_settings, kind):
    invoker = ScriptedInvoker([RuntimeError("should not be called")])
    outcome = ResponseClient(mock_settings, invoke=invoker).dispatch("p", kind)
    assert outcome == AttemptSuccess(raw_text=MOCK_RESPONSES[kind])
    assert invoker.calls == []

    assert ResponseClient(mock_settings).dispatch("p", kind) == AttemptSuccess(raw_text=MOCK_RESPONSES[kind])


def test_mock_mode_needs_no_invoker(mock_settings):
    client = ResponseClient(mock_settings)
    assert client.get_response("p", RequestKind.GENERATE_REPORT) == MOCK_RESPONSES[RequestKind.GENERATE_REPORT]


@pytest.mark.parametrize("kind", list(RequestKind))
def test_canned_responses_are_json_objects(kind):
    assert isinstance(json.loads(MOCK_RESPONSES[kind]), dict)
    assert isinstance(json.loads(DEGRADED_RESPONSES[kind]), dict)
