from __future__ import annotations

import pytest

from shipit.errors import StructuredOutputError
from shipit.models.report import SectionName
from shipit.models.sections import (
    DEFAULT_TAM,
    EXPECTED_KEYS,
    MarketOutput,
    VisionOutput,
    fix_market_size,
)
from shipit.services.structured_output import parse_json_object, parse_model, unwrap_if_needed


def test_parse_strips_code_fences():
    assert parse_json_object('```json\n{"a": 1}\n```', "x") == {"a": 1}


def test_parse_tolerates_surrounding_prose():
    assert parse_json_object('Here you go: {"a": {"b": 2}} Hope this helps', "x") == {"a": {"b": 2}}


@pytest.mark.parametrize("text", ["", "not json at all", "[1, 2, 3]", "{broken"])
def test_parse_rejects_non_objects(text):
    with pytest.raises(StructuredOutputError) as excinfo:
        parse_json_object(text, "Vision")
    assert excinfo.value.label == "Vision"
    assert str(excinfo.value).startswith("Invalid JSON from reasoning engine for Vision")


def test_unwrap_single_wrapper_key():
    wrapped = {"vision": {"name": "BeanBox", "tagline": "t"}}

    assert unwrap_if_needed(wrapped, EXPECTED_KEYS[SectionName.VISION], "Vision") == {
        "name": "BeanBox",
        "tagline": "t",
    }


def test_unwrap_leaves_well_formed_answers_alone():
    payload = {"name": "BeanBox", "extra": {"tagline": "t"}}

    assert unwrap_if_needed(payload, ("name", "tagline"), "Vision") is payload


def test_unwrap_needs_a_single_object_key():
    two_keys = {"a": {"name": "x"}, "b": {}}
    scalar = {"vision": "BeanBox"}

    assert unwrap_if_needed(two_keys, ("name",), "Vision") is two_keys
    assert unwrap_if_needed(scalar, ("name",), "Vision") is scalar


def test_parse_model_validates_after_unwrapping():
    text = '{"result": {"name": "BeanBox", "tagline": "t", "valueProposition": "v"}}'

    vision = parse_model(text, VisionOutput, "Vision", EXPECTED_KEYS[SectionName.VISION])

    assert vision.name == "BeanBox"
    assert vision.payload()["valueProposition"] == "v"


def test_parse_model_null_optional_fields_take_defaults():
    text = (
        '{"name": "BeanBox", "tagline": "t", "valueProposition": "v",'
        ' "businessModel": null, "ahaMoment": null, "features": null}'
    )

    vision = parse_model(text, VisionOutput, "Vision", EXPECTED_KEYS[SectionName.VISION])

    assert vision.business_model == ""
    assert vision.aha_moment == ""
    assert vision.features == []


def test_parse_model_null_required_field_still_fails():
    with pytest.raises(StructuredOutputError):
        parse_model('{"name": null, "tagline": "t", "valueProposition": "v"}', VisionOutput, "Vision")


def test_parse_model_schema_mismatch_is_structured_output_error():
    with pytest.raises(StructuredOutputError, match="Market"):
        parse_model('{"market": []}', MarketOutput, "Market", EXPECTED_KEYS[SectionName.MARKET])


def test_section_key_in_answer_does_not_break_validation():
    vision = VisionOutput.model_validate(
        {"section": "oops", "name": "n", "tagline": "t", "valueProposition": "v"}
    )

    assert vision.section is SectionName.VISION


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"tam": 100, "sam": 50, "som": 5}, {"tam": 100, "sam": 50, "som": 5}),
        ({"tam": 0, "sam": 0, "som": 0}, {"tam": DEFAULT_TAM, "sam": 10_000_000_000, "som": 300_000_000}),
        ({"tam": 1000, "sam": 2000, "som": 10}, {"tam": 1000, "sam": 200, "som": 10}),
        ({"tam": 1000, "sam": 100, "som": 100}, {"tam": 1000, "sam": 100, "som": 3}),
        ({"tam": "5e9", "sam": None}, {"tam": 5_000_000_000, "sam": 1_000_000_000, "som": 30_000_000}),
        (None, {"tam": DEFAULT_TAM, "sam": 10_000_000_000, "som": 300_000_000}),
        ({"tam": 4, "sam": 0, "som": 0}, {"tam": 4, "sam": 2, "som": 1}),
        ({"tam": 0.5}, {"tam": DEFAULT_TAM, "sam": 10_000_000_000, "som": 300_000_000}),
        (
            {"tam": float("nan"), "sam": float("inf"), "som": "-Infinity"},
            {"tam": DEFAULT_TAM, "sam": 10_000_000_000, "som": 300_000_000},
        ),
    ],
)
def test_fix_market_size(raw, expected):
    assert fix_market_size(raw) == expected


@pytest.mark.parametrize("tam", [0, 1, 2, 3, 4, 7, 10, 99, 1e4, 3.6e12])
@pytest.mark.parametrize("sam", [None, 0, 0.4, 1, 2, 5, 1e9])
@pytest.mark.parametrize("som", [None, 0, 1, 3, 1e8])
def test_fix_market_size_keeps_strict_order(tam, sam, som):
    fixed = fix_market_size({"tam": tam, "sam": sam, "som": som})

    assert fixed["tam"] > fixed["sam"] > fixed["som"] >= 1


def test_market_payload_normalizes_market_size():
    market = MarketOutput.model_validate(
        {"market": {}, "marketExtended": {"marketSize": {"tam": 1000, "sam": 2000, "som": 5000}, "x": 1}}
    )

    extended = market.payload()["marketExtended"]

    assert extended["marketSize"] == {"tam": 1000, "sam": 200, "som": 6}
    assert extended["x"] == 1
