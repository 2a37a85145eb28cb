import pytest

from circumetal_app.errors import MalformedResponseError
from circumetal_app.models.schemas import NodeInsight, RecommendationReport, RequestKind
from circumetal_app.services.response_parser import parse_response, strip_code_fences, validate_payload


def test_parse_strict_json():
    assert parse_response('{"a": 1, "b": [1, 2]}') == {"a": 1, "b": [1, 2]}


def test_strip_code_fences_with_language_tag():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```javascript\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'


@pytest.mark.parametrize(
    "wrapped",
    [
        '```json\n{"summary": "x", "recommendations": ["a"]}\n```',
        'Sure! Here is the data:\n```json\n{"summary": "x", "recommendations": ["a"]}\n```\nHope it helps.',
        'Result: {"summary": "x", "recommendations": ["a"]} -- end',
    ],
)
def test_wrapped_json_parses_to_same_object(wrapped):
    strict = '{"summary": "x", "recommendations": ["a"]}'
    assert parse_response(wrapped) == parse_response(strict)


def test_nested_braces_are_kept():
    raw = 'Here: {"outer": {"inner": 1}} done'
    assert parse_response(raw) == {"outer": {"inner": 1}}


@pytest.mark.parametrize(
    "raw",
    ["I cannot comply.", "", "   ", "[1, 2, 3]", "42", '"text"', "{not json}", '["a", "b"]'],
)
def test_unrecoverable_responses_raise(raw):
    with pytest.raises(MalformedResponseError):
        parse_response(raw)


@pytest.mark.parametrize(
    "raw",
    [
        '[{"energyConsumptionKwh": 1}]',
        '```json\n[{"energyConsumptionKwh": 1}]\n```',
    ],
)
def test_array_wrapping_an_object_recovers_the_object(raw):
    assert parse_response(raw) == {"energyConsumptionKwh": 1}


@pytest.mark.parametrize(
    "raw",
    [
        '{"energyConsumptionKwh": NaN}',
        '{"energyConsumptionKwh": Infinity}',
        'Here: {"waterUsageLiters": -Infinity} done',
    ],
)
def test_non_finite_constants_are_malformed(raw):
    with pytest.raises(MalformedResponseError):
        parse_response(raw)


def test_overflowing_suggestion_values_are_dropped():
    parsed = parse_response('{"energyConsumptionKwh": 1e999, "waterUsageLiters": 900}')
    assert validate_payload(RequestKind.SUGGEST_MISSING_PARAMETERS, parsed) == {"waterUsageLiters": 900}


def test_suggestions_keep_only_candidate_keys():
    parsed = {"waterUsageLiters": 5000, "favouriteColour": "blue", "transportDistanceKm": {"x": 1}}
    assert validate_payload(RequestKind.SUGGEST_MISSING_PARAMETERS, parsed) == {"waterUsageLiters": 5000}


def test_empty_suggestions_are_valid():
    assert validate_payload(RequestKind.SUGGEST_MISSING_PARAMETERS, {}) == {}


def test_report_accepts_lca_summary_alias():
    report = validate_payload(
        RequestKind.GENERATE_REPORT,
        {"lca_summary": "High energy use.", "recommendations": ["Use renewables", "", 3]},
    )
    assert isinstance(report, RecommendationReport)
    assert report.summary == "High energy use."
    assert report.recommendations == ["Use renewables", "3"]


@pytest.mark.parametrize(
    "parsed",
    [
        {"recommendations": ["a"]},
        {"summary": "", "recommendations": ["a"]},
        {"summary": "ok"},
        {"summary": "ok", "recommendations": "not a list"},
        {"summary": "ok", "recommendations": []},
        {"summary": "ok", "recommendations": ["  "]},
    ],
)
def test_invalid_reports_are_malformed(parsed):
    with pytest.raises(MalformedResponseError):
        validate_payload(RequestKind.GENERATE_REPORT, parsed)


def test_node_insight_accepts_camel_and_snake_case():
    camel = validate_payload(
        RequestKind.GENERATE_NODE_INSIGHT,
        {"circularOpportunities": "Recycle slag.", "environmentalImpacts": "High CO2."},
    )
    snake = validate_payload(
        RequestKind.GENERATE_NODE_INSIGHT,
        {"circular_opportunities": "Recycle slag.", "environmental_impacts": "High CO2."},
    )
    assert isinstance(camel, NodeInsight)
    assert camel == snake


@pytest.mark.parametrize(
    "parsed",
    [
        {"circularOpportunities": "x"},
        {"environmentalImpacts": "x"},
        {"circularOpportunities": " ", "environmentalImpacts": "x"},
        {"circularOpportunities": 5, "environmentalImpacts": "x"},
    ],
)
def test_invalid_node_insights_are_malformed(parsed):
    with pytest.raises(MalformedResponseError):
        validate_payload(RequestKind.GENERATE_NODE_INSIGHT, parsed)
