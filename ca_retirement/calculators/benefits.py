"""Government benefits and other recurring income.

Covers the Canada Pension Plan (CPP), Old Age Security (OAS) with its
recovery tax ("clawback"), and the Guaranteed Income Supplement (GIS).  The
rules are simplified:

* CPP is entered as the annual amount payable at 65 in base-year dollars.
  Starting earlier reduces it by 0.6% per month, starting later increases it
  by 0.7% per month.  The start age is clamped to 60-70.
* OAS pays the base-year maximum scaled by residency (40 years for the full
  amount), plus 0.6% per month of deferral past 65 (up to 70), indexed to the
  current year.  Recipients aged 75 and over receive 10% more.
* GIS is assessed on the household's previous-year income once the user is
  65.  Couples where the spouse is also 65 share the couple maximum equally;
  otherwise the user receives the single rate.
* Other income items are indexed from the base year by their own COLA.

Example
-------

>>> round(oas_clawback(net_income=100000, oas=8881, threshold=90997), 2)
1350.45
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from .. import config
from ..models import IncomeBreakdown, Person, Scenario, Settings, YearRecord


def _load_benefits(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load OAS and GIS parameters from JSON.

    Parameters
    ----------
    path : Path, optional
        Path to a JSON file.  Defaults to the file shipped with the package.
    """
    p = path or config.BENEFITS_PATH
    with open(p, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _default_benefits() -> Dict[str, Dict]:
    return _load_benefits()


def benefit_tables(settings: Optional[Settings] = None) -> Dict[str, Dict]:
    if settings is not None and settings.benefits is not None:
        return settings.benefits
    return _default_benefits()


def cpp_benefit(
    cpp_at_65: float,
    start_age: int,
    birth_year: int,
    year: int,
    cola: float,
    base_year: int = config.BASE_YEAR,
) -> float:
    """Annual CPP payable in ``year``.

    The age-65 amount is indexed from ``base_year`` to the start year, adjusted
    for early or late take-up, then indexed from the start year onward.  Zero
    before the benefit starts.
    """
    start_age = max(config.CPP_MIN_START_AGE, min(config.CPP_MAX_START_AGE, start_age))
    if year - birth_year < start_age or cpp_at_65 <= 0:
        return 0.0
    months = (start_age - 65) * 12
    if months < 0:
        adjustment = months * config.CPP_EARLY_REDUCTION_PER_MONTH
    else:
        adjustment = months * config.CPP_LATE_INCREASE_PER_MONTH
    start_year = birth_year + start_age
    at_start = cpp_at_65 * (1 + cola) ** max(0, start_year - base_year)
    return at_start * (1 + adjustment) * (1 + cola) ** max(0, year - start_year)


def oas_benefit(
    age: int,
    start_age: int,
    residency_years: int,
    cola_multiplier: float,
    max_payment: float,
) -> float:
    """Annual OAS payable before any clawback."""
    start_age = max(config.OAS_MIN_START_AGE, min(config.OAS_MAX_START_AGE, start_age))
    if age < start_age:
        return 0.0
    residency = min(1.0, max(0, residency_years) / config.OAS_FULL_RESIDENCY_YEARS)
    deferral = max(0, (start_age - 65) * 12) * config.OAS_DEFERRAL_PER_MONTH
    amount = max_payment * residency * (1 + deferral) * cola_multiplier
    if age >= 75:
        amount *= 1 + config.OAS_AGE_75_BOOST
    return amount


def oas_clawback(
    net_income: float,
    oas: float,
    threshold: float,
    rate: float = 0.15,
) -> float:
    """OAS recovery tax: 15% of net income over ``threshold``, capped at OAS."""
    if net_income <= threshold:
        return 0.0
    return max(0.0, min(oas, (net_income - threshold) * rate))


def household_gis(
    prior_year_income: float,
    couple: bool,
    cola_multiplier: float,
    gis: Dict[str, float],
) -> float:
    """Household GIS entitlement from the previous year's combined income."""
    if couple:
        threshold = gis["income_threshold_couple"] * cola_multiplier
        max_payment = gis["max_payment_couple_total"] * cola_multiplier
    else:
        threshold = gis["income_threshold_single"] * cola_multiplier
        max_payment = gis["max_payment_single"] * cola_multiplier
    if prior_year_income >= threshold:
        return 0.0
    exemption = gis.get("exemption", 0.0) * cola_multiplier
    reduction = max(0.0, prior_year_income - exemption) * gis.get("reduction_rate", 0.5)
    return max(0.0, max_payment - reduction)


def gis_split(
    scenario: Scenario,
    user_age: int,
    spouse_age: Optional[int],
    prior_year_income: float,
    cola_multiplier: float,
    gis: Dict[str, float],
) -> Tuple[float, float]:
    """Return the (user, spouse) GIS payments for the year.

    Nothing is paid until the user is 65.  The couple rate applies when the
    spouse is 65 as well; otherwise the user receives the single rate.
    """
    if user_age < config.GIS_MIN_AGE:
        return 0.0, 0.0
    couple = (
        scenario.spouse is not None
        and spouse_age is not None
        and spouse_age >= config.GIS_MIN_AGE
    )
    total = household_gis(prior_year_income, couple, cola_multiplier, gis)
    if couple:
        return total / 2, total / 2
    return total, 0.0


def indexed_item_amount(amount: float, item_cola: float, year: int, base_year: int) -> float:
    return amount * (1 + item_cola) ** max(0, year - base_year)


def item_totals(person: Person, age: int, year: int, base_year: int) -> Dict[str, float]:
    """Sum a person's active items for the year by kind.

    Returns a dict with ``income``, ``expense`` and ``medical`` totals; medical
    items are also counted as expenses.
    """
    totals = {"income": 0.0, "expense": 0.0, "medical": 0.0}
    for item in person.items:
        if not item.active_at(age):
            continue
        value = indexed_item_amount(item.amount, item.cola, year, base_year)
        if item.type == "expense":
            totals["expense"] += value
            if item.is_medical:
                totals["medical"] += value
        else:
            totals["income"] += value
    return totals


def _person_income(
    person: Person,
    age: int,
    year: int,
    settings: Settings,
    oas_max: float,
) -> IncomeBreakdown:
    multiplier = settings.cola_multiplier(year)
    return IncomeBreakdown(
        cpp=cpp_benefit(
            person.cpp_at_65,
            person.cpp_start_age,
            person.birth_year,
            year,
            settings.cola,
            settings.base_year,
        ),
        oas=oas_benefit(age, person.oas_start_age, person.residency_years, multiplier, oas_max),
        other=item_totals(person, age, year, settings.base_year)["income"],
    )


def calculate_income(
    record: YearRecord,
    scenario: Scenario,
    settings: Settings,
    prior_year_income_for_gis: float,
) -> None:
    """Fill in each person's non-withdrawal income for ``record.year``.

    OAS is stored before clawback; the tax step replaces it with the amount
    actually received.
    """
    tables = benefit_tables(settings)
    oas_max = tables["OAS"]["max_payment"]
    year = record.year

    record.user.income = _person_income(scenario.user, record.user.age, year, settings, oas_max)
    if record.spouse is not None and scenario.spouse is not None:
        record.spouse.income = _person_income(
            scenario.spouse, record.spouse.age, year, settings, oas_max
        )

    gis_user, gis_spouse = gis_split(
        scenario,
        record.user.age,
        record.spouse_age,
        prior_year_income_for_gis,
        settings.cola_multiplier(year),
        tables["GIS"],
    )
    record.user.income.gis = gis_user
    if record.spouse is not None:
        record.spouse.income.gis = gis_spouse


__all__ = [
    "benefit_tables",
    "cpp_benefit",
    "oas_benefit",
    "oas_clawback",
    "household_gis",
    "gis_split",
    "indexed_item_amount",
    "item_totals",
    "calculate_income",
    "_load_benefits",
]
