"""Tests for the input boundary."""

import logging

import pytest

from ca_retirement.components import inputs
from ca_retirement.errors import ScenarioValidationError


def _raw_input(**overrides):
    raw = {
        "province": "on",
        "lifeExpectancy": 92,
        "cola": 0.02,
        "scenario": {
            "retirementAge": 66,
            "returns": {"rrsp": 0.05, "tfsa": 0.04},
            "user": {
                "birthYear": 1959,
                "cppStartAge": 67,
                "cppAt65": 11000,
                "assets": {"rrsp": 300000, "nonreg": 80000, "nonreg_acb": 50000},
                "otherIncomes": [
                    {"desc": "DB pension", "amount": 20000, "startAge": 66, "endAge": 95},
                    {
                        "type": "expense",
                        "desc": "Care",
                        "amount": 4000,
                        "startAge": 80,
                        "endAge": 95,
                        "isMedical": True,
                    },
                ],
            },
            "spouse": {
                "hasSpouse": True,
                "data": {"birthYear": 1962, "yearsInCanada": 0, "assets": {"tfsa": 60000}},
            },
            "withdrawalStrategy": [
                {"startAge": 66, "endAge": 75, "expenses": 50000, "order": ["tfsa", "none", "rrsp"]},
                {"startAge": 76, "endAge": 100, "expenses": 45000, "order": ["rrsp"]},
            ],
        },
    }
    raw.update(overrides)
    return raw


def test_scenario_input_from_dict():
    parsed = inputs.scenario_input_from_dict(_raw_input())
    assert parsed.province == "ON"
    assert parsed.life_expectancy == 92
    scenario = parsed.scenario
    assert scenario.retirement_age == 66
    assert scenario.returns == {"rrsp": 0.05, "tfsa": 0.04, "nonreg": 0.0, "lif": 0.0}

    user = scenario.user
    assert user.cpp_start_age == 67
    assert user.oas_start_age == 65
    assert user.years_in_canada is None
    assert user.residency_years == 40
    assert user.initial_nonreg_gains == 30000
    assert [i.type for i in user.items] == ["income", "expense"]
    assert user.items[1].is_medical

    assert scenario.spouse.years_in_canada == 0
    assert scenario.spouse.residency_years == 0
    assert scenario.withdrawal_strategy[0].order == ["tfsa", "rrsp"]


def test_spouse_ignored_unless_flagged():
    raw = _raw_input()
    raw["scenario"]["spouse"]["hasSpouse"] = False
    assert inputs.scenario_input_from_dict(raw).scenario.spouse is None


def test_defaults_applied():
    raw = {"scenario": {"user": {"birthYear": 1960}}}
    parsed = inputs.scenario_input_from_dict(raw)
    assert parsed.province == "ON"
    assert parsed.life_expectancy == 95
    assert parsed.cola == 0.025
    assert parsed.scenario.retirement_age == 65
    assert parsed.scenario.withdrawal_strategy == []


def test_explicit_gains_override_acb():
    person = inputs.parse_person(
        {"birthYear": 1960, "initialNonRegGains": 1234, "assets": {"nonreg": 5000, "nonreg_acb": 0}}
    )
    assert person.initial_nonreg_gains == 1234
    no_gain = inputs.parse_person({"birthYear": 1960, "assets": {"nonreg": 5000, "nonreg_acb": 9000}})
    assert no_gain.initial_nonreg_gains == 0.0


@pytest.mark.parametrize(
    "person",
    [
        {},
        {"birthYear": "soon"},
        {"birthYear": 1960, "yearsInCanada": 41},
        {"birthYear": 1960, "yearsInCanada": -1},
        {"birthYear": 1960, "assets": {"rrsp": -5}},
        {"birthYear": 1960, "assets": {"crypto": 5}},
    ],
)
def test_invalid_person_rejected(person):
    with pytest.raises(ScenarioValidationError):
        inputs.parse_person(person)


def test_invalid_items_rejected():
    with pytest.raises(ScenarioValidationError):
        inputs.parse_income_item({"type": "gift", "amount": 1, "startAge": 60, "endAge": 70})
    with pytest.raises(ScenarioValidationError):
        inputs.parse_income_item({"owner": "child", "amount": 1, "startAge": 60, "endAge": 70})
    with pytest.raises(ScenarioValidationError):
        inputs.parse_income_item({"amount": 1, "startAge": 70, "endAge": 60})


def test_invalid_strategy_rejected():
    four_phases = [{"startAge": 60, "endAge": 100, "order": ["tfsa"]}] * 4
    with pytest.raises(ScenarioValidationError):
        inputs.parse_strategy(four_phases)
    with pytest.raises(ScenarioValidationError):
        inputs.parse_strategy([{"startAge": 60, "endAge": 100, "order": ["tfsa", "tfsa"]}])
    with pytest.raises(ScenarioValidationError):
        inputs.parse_strategy([{"startAge": 60, "endAge": 100, "order": ["rrif"]}])


def test_invalid_province_and_missing_scenario():
    with pytest.raises(ScenarioValidationError):
        inputs.scenario_input_from_dict(_raw_input(province="Ontario"))
    with pytest.raises(ScenarioValidationError):
        inputs.scenario_input_from_dict({"province": "ON"})


def _saved_state():
    return {
        "province": "BC",
        "lifeExpectancy": 93,
        "cola": 0.02,
        "hasSpouse": True,
        "hasSpouse_b": False,
        "stdevs": {"rrsp": 0.1, "tfsa": 0.08},
        "stdevs_b": {"rrsp": 0.12},
        "scenarioAData": {
            "retirementAge": 65,
            "returns": {"rrsp": 0.05},
            "user": {"birthYear": 1960, "cppAt65": 10000, "assets": {"rrsp": 250000}},
            "spouse": {"birthYear": 1961, "yearsInCanada": 25, "assets": {"lif": 40000}},
        },
        "otherIncomes_a": [
            {"desc": "Rent", "amount": 12000, "startAge": 65, "endAge": 80, "owner": "user"},
            {"desc": "Part time", "amount": 8000, "startAge": 64, "endAge": 68, "owner": "spouse"},
        ],
        "strategy_a": [{"startAge": 65, "endAge": 100, "expenses": 55000, "order": ["rrsp", "lif"]}],
        "scenarioBData": {
            "retirementAge": 62,
            "user": {
                "birthYear": 1960,
                "assets": {"nonreg": 100000, "nonreg_acb": 70000},
            },
        },
        "otherIncomes_b": [
            {"desc": "Part time", "amount": 8000, "startAge": 64, "endAge": 68, "owner": "spouse"},
        ],
        "strategy_b": [{"startAge": 62, "endAge": 100, "expenses": 40000, "order": ["nonreg"]}],
    }


def test_load_saved_state_routes_items_by_owner(caplog):
    with caplog.at_level(logging.INFO):
        state = inputs.load_saved_state(_saved_state())
    a = state.inputs_a.scenario
    assert state.inputs_a.province == "BC"
    assert [i.description for i in a.user.items] == ["Rent"]
    assert [i.description for i in a.spouse.items] == ["Part time"]
    assert a.spouse.years_in_canada == 25
    assert state.stdevs_a["tfsa"] == 0.08

    b = state.inputs_b.scenario
    assert b.spouse is None
    assert b.user.items == []
    assert b.user.initial_nonreg_gains == 30000
    assert state.stdevs_b == {"rrsp": 0.12, "tfsa": 0.0, "nonreg": 0.0, "lif": 0.0}
    assert "Ignoring 1 spouse-owned items" in caplog.text


def test_saved_state_round_trip():
    state = inputs.load_saved_state(_saved_state())
    dumped = inputs.dump_saved_state(state)
    assert inputs.load_saved_state(dumped) == state
    assert "yearsInCanada" not in dumped["scenarioAData"]["user"]
    assert dumped["scenarioAData"]["spouse"]["yearsInCanada"] == 25
    assert dumped["scenarioBData"]["user"]["assets"]["nonreg_acb"] == 70000
