"""Input boundary: raw dictionaries to typed scenarios and back.

Two raw shapes are accepted.  ``scenario_input_from_dict`` takes the engine
input structure::

    {"province": "ON", "lifeExpectancy": 95, "cola": 0.025,
     "scenario": {"retirementAge": 65, "returns": {...}, "user": {...},
                  "spouse": {"hasSpouse": True, "data": {...}},
                  "withdrawalStrategy": [...]}}

``load_saved_state`` takes the persisted layout holding both scenarios
(``scenarioAData``, ``otherIncomes_a``, ``strategy_a`` and their ``_b``
counterparts).  All defaulting and validation happens here so the calculators
can rely on well-formed inputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .. import config
from ..errors import ScenarioValidationError
from ..models import (
    IncomeItem,
    Person,
    Scenario,
    ScenarioInput,
    WithdrawalPhase,
    zero_accounts,
)

logger = logging.getLogger(__name__)

_ITEM_TYPES = ("income", "expense")
_OWNERS = ("user", "spouse")


def _number(raw: Dict[str, Any], key: str, default=None, cast=float):
    value = raw.get(key, default)
    if value is None or value == "":
        if default is None:
            raise ScenarioValidationError(f"Missing required field '{key}'")
        value = default
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ScenarioValidationError(f"Field '{key}' is not a number: {value!r}") from exc


def _accounts(raw: Optional[Dict[str, Any]], label: str, allow: Iterable[str] = ()) -> Dict[str, float]:
    raw = raw or {}
    unknown = set(raw) - set(config.ACCOUNT_TYPES) - set(allow)
    if unknown:
        raise ScenarioValidationError(f"Unknown account types in {label}: {sorted(unknown)}")
    values = zero_accounts()
    for acct in config.ACCOUNT_TYPES:
        values[acct] = _number(raw, acct, 0.0)
    return values


def parse_income_item(raw: Dict[str, Any]) -> IncomeItem:
    item_type = raw.get("type") or "income"
    if item_type not in _ITEM_TYPES:
        raise ScenarioValidationError(f"Unknown item type {item_type!r}")
    owner = raw.get("owner") or "user"
    if owner not in _OWNERS:
        raise ScenarioValidationError(f"Unknown item owner {owner!r}")
    start_age = _number(raw, "startAge", cast=int)
    end_age = _number(raw, "endAge", cast=int)
    if end_age < start_age:
        raise ScenarioValidationError(
            f"Item end age {end_age} is before its start age {start_age}"
        )
    return IncomeItem(
        amount=_number(raw, "amount", 0.0),
        start_age=start_age,
        end_age=end_age,
        owner=owner,
        type=item_type,
        description=str(raw.get("desc", raw.get("description", ""))),
        cola=_number(raw, "cola", 0.0),
        is_medical=bool(raw.get("isMedical", False)),
    )


def parse_person(
    raw: Dict[str, Any],
    items: Optional[List[IncomeItem]] = None,
    owner: str = "user",
) -> Person:
    """Build a ``Person``.

    ``items`` overrides any ``otherIncomes`` in ``raw``; items read from
    ``raw`` are assigned to ``owner``.
    """
    if not isinstance(raw, dict):
        raise ScenarioValidationError("Person data must be a mapping")
    raw_assets = raw.get("assets") or {}
    assets = _accounts(raw_assets, "assets", allow=("nonreg_acb",))
    for acct, value in assets.items():
        if value < 0:
            raise ScenarioValidationError(f"Negative {acct} balance: {value}")

    years = raw.get("yearsInCanada")
    if years is not None:
        years = _number(raw, "yearsInCanada", cast=int)
        if not 0 <= years <= config.OAS_FULL_RESIDENCY_YEARS:
            raise ScenarioValidationError(f"yearsInCanada must be between 0 and 40, got {years}")

    if raw.get("initialNonRegGains") is not None:
        gains = _number(raw, "initialNonRegGains")
    else:
        acb = _number(raw_assets, "nonreg_acb", 0.0)
        gains = max(0.0, assets["nonreg"] - acb)

    if items is None:
        items = [parse_income_item(i) for i in raw.get("otherIncomes") or []]
        for item in items:
            item.owner = owner

    return Person(
        birth_year=_number(raw, "birthYear", cast=int),
        cpp_start_age=_number(raw, "cppStartAge", 65, cast=int),
        cpp_at_65=_number(raw, "cppAt65", 0.0),
        oas_start_age=_number(raw, "oasStartAge", 65, cast=int),
        years_in_canada=years,
        assets=assets,
        initial_nonreg_gains=gains,
        items=items,
    )


def parse_strategy(raw: Optional[List[Dict[str, Any]]]) -> List[WithdrawalPhase]:
    raw = raw or []
    if len(raw) > config.MAX_PHASES:
        raise ScenarioValidationError(
            f"At most {config.MAX_PHASES} withdrawal phases are supported, got {len(raw)}"
        )
    phases = []
    for entry in raw:
        order = [acct for acct in entry.get("order") or [] if acct and acct != "none"]
        if len(order) > len(config.ACCOUNT_TYPES):
            raise ScenarioValidationError(f"Too many accounts in withdrawal order: {order}")
        unknown = [acct for acct in order if acct not in config.ACCOUNT_TYPES]
        if unknown:
            raise ScenarioValidationError(f"Unknown account types in withdrawal order: {unknown}")
        if len(set(order)) != len(order):
            raise ScenarioValidationError(f"Duplicate account in withdrawal order: {order}")
        phases.append(
            WithdrawalPhase(
                start_age=_number(entry, "startAge", 0, cast=int),
                end_age=_number(entry, "endAge", 0, cast=int),
                expenses=_number(entry, "expenses", 0.0),
                order=order,
            )
        )
    return phases


def _province(raw: Dict[str, Any]) -> str:
    province = str(raw.get("province") or config.DEFAULT_PROVINCE).strip().upper()
    if len(province) != 2 or not province.isalpha():
        raise ScenarioValidationError(f"Invalid province code {province!r}")
    return province


def scenario_input_from_dict(raw: Dict[str, Any]) -> ScenarioInput:
    """Validate the engine input structure and return a ``ScenarioInput``."""
    scenario_raw = raw.get("scenario")
    if not isinstance(scenario_raw, dict):
        raise ScenarioValidationError("Input is missing the 'scenario' mapping")

    spouse = None
    spouse_raw = scenario_raw.get("spouse") or {}
    if spouse_raw.get("hasSpouse") and spouse_raw.get("data"):
        spouse = parse_person(spouse_raw["data"], owner="spouse")

    scenario = Scenario(
        user=parse_person(scenario_raw.get("user") or {}),
        retirement_age=_number(scenario_raw, "retirementAge", config.DEFAULT_RETIREMENT_AGE, cast=int),
        returns=_accounts(scenario_raw.get("returns"), "returns"),
        spouse=spouse,
        withdrawal_strategy=parse_strategy(scenario_raw.get("withdrawalStrategy")),
    )
    return ScenarioInput(
        province=_province(raw),
        life_expectancy=_number(raw, "lifeExpectancy", config.DEFAULT_LIFE_EXPECTANCY, cast=int),
        cola=_number(raw, "cola", config.DEFAULT_COLA),
        scenario=scenario,
    )


@dataclass
class SavedState:
    inputs_a: ScenarioInput
    inputs_b: ScenarioInput
    stdevs_a: Dict[str, float] = field(default_factory=zero_accounts)
    stdevs_b: Dict[str, float] = field(default_factory=zero_accounts)


def _scenario_from_saved(
    data: Dict[str, Any],
    scenario_data: Dict[str, Any],
    incomes: List[Dict[str, Any]],
    strategy: List[Dict[str, Any]],
    has_spouse: bool,
) -> ScenarioInput:
    items = [parse_income_item(i) for i in incomes or []]
    user_items = [i for i in items if i.owner == "user"]
    spouse_items = [i for i in items if i.owner == "spouse"]
    if spouse_items and not has_spouse:
        logger.info("Ignoring %d spouse-owned items: scenario has no spouse", len(spouse_items))

    spouse = None
    if has_spouse:
        spouse = parse_person(scenario_data.get("spouse") or {}, spouse_items)

    scenario = Scenario(
        user=parse_person(scenario_data.get("user") or {}, user_items),
        retirement_age=_number(scenario_data, "retirementAge", config.DEFAULT_RETIREMENT_AGE, cast=int),
        returns=_accounts(scenario_data.get("returns"), "returns"),
        spouse=spouse,
        withdrawal_strategy=parse_strategy(strategy),
    )
    return ScenarioInput(
        province=_province(data),
        life_expectancy=_number(data, "lifeExpectancy", config.DEFAULT_LIFE_EXPECTANCY, cast=int),
        cola=_number(data, "cola", config.DEFAULT_COLA),
        scenario=scenario,
    )


def load_saved_state(data: Dict[str, Any]) -> SavedState:
    """Rebuild both scenarios from the persisted layout."""
    inputs_a = _scenario_from_saved(
        data,
        data.get("scenarioAData") or {},
        data.get("otherIncomes_a") or [],
        data.get("strategy_a") or [],
        bool(data.get("hasSpouse")),
    )
    inputs_b = _scenario_from_saved(
        data,
        data.get("scenarioBData") or {},
        data.get("otherIncomes_b") or [],
        data.get("strategy_b") or [],
        bool(data.get("hasSpouse_b")),
    )
    return SavedState(
        inputs_a=inputs_a,
        inputs_b=inputs_b,
        stdevs_a=_accounts(data.get("stdevs"), "stdevs"),
        stdevs_b=_accounts(data.get("stdevs_b"), "stdevs_b"),
    )


def _dump_person(person: Person) -> Dict[str, Any]:
    assets = dict(person.assets)
    assets["nonreg_acb"] = max(0.0, person.assets.get("nonreg", 0.0) - person.initial_nonreg_gains)
    out = {
        "birthYear": person.birth_year,
        "cppStartAge": person.cpp_start_age,
        "cppAt65": person.cpp_at_65,
        "oasStartAge": person.oas_start_age,
        "assets": assets,
    }
    if person.years_in_canada is not None:
        out["yearsInCanada"] = person.years_in_canada
    return out


def _dump_item(item: IncomeItem) -> Dict[str, Any]:
    return {
        "type": item.type,
        "desc": item.description,
        "amount": item.amount,
        "startAge": item.start_age,
        "endAge": item.end_age,
        "owner": item.owner,
        "cola": item.cola,
        "isMedical": item.is_medical,
    }


def _dump_strategy(phases: List[WithdrawalPhase]) -> List[Dict[str, Any]]:
    return [
        {
            "startAge": p.start_age,
            "endAge": p.end_age,
            "expenses": p.expenses,
            "order": list(p.order),
        }
        for p in phases
    ]


def _dump_scenario(inputs: ScenarioInput) -> Dict[str, Any]:
    scenario = inputs.scenario
    data = {
        "retirementAge": scenario.retirement_age,
        "returns": dict(scenario.returns),
        "user": _dump_person(scenario.user),
    }
    if scenario.spouse is not None:
        data["spouse"] = _dump_person(scenario.spouse)
    items = list(scenario.user.items)
    if scenario.spouse is not None:
        items += scenario.spouse.items
    return {
        "data": data,
        "incomes": [_dump_item(i) for i in items],
        "strategy": _dump_strategy(scenario.withdrawal_strategy),
    }


def dump_saved_state(state: SavedState) -> Dict[str, Any]:
    """Inverse of ``load_saved_state``.

    Province, life expectancy and COLA are shared by both scenarios in the
    persisted layout and are taken from scenario A.
    """
    a = _dump_scenario(state.inputs_a)
    b = _dump_scenario(state.inputs_b)
    return {
        "province": state.inputs_a.province,
        "lifeExpectancy": state.inputs_a.life_expectancy,
        "cola": state.inputs_a.cola,
        "stdevs": dict(state.stdevs_a),
        "stdevs_b": dict(state.stdevs_b),
        "scenarioAData": a["data"],
        "otherIncomes_a": a["incomes"],
        "strategy_a": a["strategy"],
        "scenarioBData": b["data"],
        "otherIncomes_b": b["incomes"],
        "strategy_b": b["strategy"],
        "hasSpouse": state.inputs_a.scenario.has_spouse,
        "hasSpouse_b": state.inputs_b.scenario.has_spouse,
    }


__all__ = [
    "SavedState",
    "parse_income_item",
    "parse_person",
    "parse_strategy",
    "scenario_input_from_dict",
    "load_saved_state",
    "dump_saved_state",
]
