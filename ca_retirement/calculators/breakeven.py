"""CPP start-age break-even analysis.

Starting CPP early pays smaller cheques for more years; starting late pays
larger cheques for fewer.  The early starter's extra after-tax payments made
before the late start age are invested at ``investment_return`` to form a
"head start pot".  From the late start age the household collects the yearly
difference between the two streams, and the break-even age is the point at
which that running total first covers the pot, interpolated within the year.

After-tax CPP is the household CPP less the extra income tax and OAS
recovery tax that CPP causes, i.e. the difference between each person's tax
with and without their CPP.  Both spouses are assumed to start CPP at the
age being compared.  GIS is left out because it is not taxed.

Example
-------

>>> from ca_retirement.models import Person, Scenario, Settings
>>> scenario = Scenario(user=Person(birth_year=1960, cpp_at_65=10000))
>>> tables = {"FED": {"brackets": [{"over": 0, "rate": 0.0}]},
...           "ON": {"brackets": [{"over": 0, "rate": 0.0}]}}
>>> settings = Settings(province="ON", max_age=95, cola=0.0, tax_tables=tables)
>>> run_break_even(scenario, settings, 65, 70).break_even_age
80.9
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .. import config
from ..errors import ScenarioValidationError
from ..models import Person, Scenario, Settings
from .benefits import benefit_tables, cpp_benefit, item_totals, oas_benefit, oas_clawback
from .taxes import adjust_brackets, adjust_credits, calculate_single_tax, tax_tables_for

logger = logging.getLogger(__name__)


@dataclass
class BreakEvenRow:
    age: int
    early_after_tax_cpp: float
    late_after_tax_cpp: float
    annual_difference: float
    pot_value: float
    cumulative_difference: float


@dataclass
class BreakEvenResult:
    """``break_even_age`` is -1 when the late start never catches up."""

    break_even_age: float
    head_start_pot: float
    details: List[BreakEvenRow] = field(default_factory=list)


def _income_tax(
    taxable_income: float,
    age: int,
    medical_expenses: float,
    tables: Dict[str, Dict],
    settings: Settings,
    year: int,
) -> float:
    multiplier = settings.cola_multiplier(year)
    total = 0.0
    for jurisdiction in ("FED", settings.province):
        entry = tables[jurisdiction]
        total += calculate_single_tax(
            taxable_income,
            age,
            adjust_brackets(entry["brackets"], multiplier),
            adjust_credits(entry, multiplier),
            medical_expenses=medical_expenses,
            jurisdiction=jurisdiction,
            settings=settings,
            year=year,
        )
    return total


def _person_after_tax_cpp(
    person: Person,
    settings: Settings,
    year: int,
    cpp_start_age: int,
    tables: Optional[Dict[str, Dict]],
) -> float:
    age = person.age_in(year)
    cpp = cpp_benefit(
        person.cpp_at_65, cpp_start_age, person.birth_year, year, settings.cola, settings.base_year
    )
    if cpp == 0.0:
        return 0.0

    multiplier = settings.cola_multiplier(year)
    oas_table = benefit_tables(settings)["OAS"]
    oas = oas_benefit(
        age, person.oas_start_age, person.residency_years, multiplier, oas_table["max_payment"]
    )
    threshold = oas_table["clawback_threshold"] * multiplier
    rate = oas_table.get("clawback_rate", 0.15)
    items = item_totals(person, age, year, settings.base_year)

    cost = 0.0
    for sign, net_income in ((1, cpp + oas + items["income"]), (-1, oas + items["income"])):
        clawback = oas_clawback(net_income, oas, threshold, rate)
        tax = 0.0
        if tables is not None:
            tax = _income_tax(net_income - clawback, age, items["medical"], tables, settings, year)
        cost += sign * (tax + clawback)
    return cpp - cost


def household_after_tax_cpp(
    scenario: Scenario,
    settings: Settings,
    year: int,
    cpp_start_age: int,
) -> float:
    """Household CPP in ``year`` net of the tax and OAS recovery it triggers.

    Both the user and the spouse, if any, are assumed to start CPP at
    ``cpp_start_age``.
    """
    tables = tax_tables_for(settings)
    if "FED" not in tables or settings.province not in tables:
        logger.error(
            "Tax data missing for federal or province %s in year %s", settings.province, year
        )
        tables = None
    total = 0.0
    for person in (scenario.user, scenario.spouse):
        if person is not None:
            total += _person_after_tax_cpp(person, settings, year, cpp_start_age, tables)
    return total


def run_break_even(
    scenario: Scenario,
    settings: Settings,
    base_age: int,
    comparison_age: int,
    investment_return: float = 0.0,
) -> BreakEvenResult:
    """Compare starting CPP at two ages.

    Parameters
    ----------
    scenario : Scenario
        The household; only birth years, CPP, OAS and other items are used.
    settings : Settings
        Province, COLA and tax tables.  ``max_age`` is the last age examined.
    base_age, comparison_age : int
        The two CPP start ages, in either order, between 60 and 70.
    investment_return : float, optional
        Annual return earned on the early starter's payments before the later
        start age, as a fraction.

    Returns
    -------
    BreakEvenResult
        Break-even age rounded to one decimal (or -1), the head start pot and
        one row per age from the earlier start age to ``max_age``.
    """
    for age in (base_age, comparison_age):
        if not config.CPP_MIN_START_AGE <= age <= config.CPP_MAX_START_AGE:
            raise ScenarioValidationError(
                f"CPP start age {age} outside {config.CPP_MIN_START_AGE}-{config.CPP_MAX_START_AGE}"
            )
    if base_age == comparison_age:
        raise ScenarioValidationError("Break-even needs two different CPP start ages")

    early, late = min(base_age, comparison_age), max(base_age, comparison_age)
    birth_year = scenario.user.birth_year

    pot = 0.0
    for age in range(early, late):
        pot = pot * (1 + investment_return) + household_after_tax_cpp(
            scenario, settings, birth_year + age, early
        )

    cumulative = 0.0
    break_even = -1.0
    details: List[BreakEvenRow] = []
    for age in range(early, settings.max_age + 1):
        year = birth_year + age
        early_cpp = household_after_tax_cpp(scenario, settings, year, early)
        late_cpp = household_after_tax_cpp(scenario, settings, year, late) if age >= late else 0.0
        difference = late_cpp - early_cpp
        if age >= late:
            cumulative += difference
        details.append(BreakEvenRow(age, early_cpp, late_cpp, difference, pot, cumulative))

        if break_even < 0 and age >= late and cumulative >= pot:
            needed = pot - (cumulative - difference)
            fraction = needed / difference if difference > 0 else 0.0
            break_even = age - 1 + fraction

    if break_even < 0:
        logger.info("Starting CPP at %s never catches up with %s by age %s", late, early,
                    settings.max_age)
        return BreakEvenResult(-1, pot, details)
    return BreakEvenResult(round(break_even, 1), pot, details)


__all__ = [
    "BreakEvenRow",
    "BreakEvenResult",
    "household_after_tax_cpp",
    "run_break_even",
]
