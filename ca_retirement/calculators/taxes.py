"""Canadian personal income tax.

This module implements a simplified federal plus provincial income tax for
retirees.  The defaults embed 2025 tables for the federal government, Ontario,
British Columbia and Alberta.  Dollar thresholds are indexed from the base year
by the household COLA.  Tax is computed on marginal brackets, reduced by
non-refundable credits valued at the lowest bracket rate:

* basic personal amount;
* age amount from 65, reduced by 15% of income above an indexed threshold;
* pension income amount from 65, capped at eligible pension income (RRIF and
  LIF withdrawals, adjusted for pension splitting);
* medical expenses above the lesser of 3% of income and an indexed cap.

Ontario adds a surtax on provincial tax above two indexed thresholds.  Capital
gains are included at 50% up to $250,000 per person per year and at two thirds
above that.

Example
-------

>>> taxable_capital_gains(250000)
125000.0

>>> round(taxable_capital_gains(300000), 2)
158333.33

The underlying tables can be customised by passing a dictionary matching the
schema in ``data/tax_tables.json`` through ``Settings.tax_tables``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from .. import config
from ..models import (
    IncomeBreakdown,
    PersonTax,
    PersonYear,
    Scenario,
    Settings,
    TaxResult,
    YearRecord,
)
from .benefits import benefit_tables, oas_clawback

logger = logging.getLogger(__name__)


def _load_tax_tables(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load tax tables from JSON.  If ``path`` is not provided, load the
    default file shipped with the package.

    Parameters
    ----------
    path : Path, optional
        Path to a JSON file containing the tax tables.

    Returns
    -------
    dict
        The parsed tax tables keyed by jurisdiction code (``FED``, ``ON`` ...).
    """
    p = path or config.TAX_TABLE_PATH
    with open(p, "r", encoding="utf-8") as f:
        tables = json.load(f)
    return tables


@lru_cache(maxsize=1)
def _default_tax_tables() -> Dict[str, Dict]:
    return _load_tax_tables()


def tax_tables_for(settings: Optional[Settings] = None) -> Dict[str, Dict]:
    if settings is not None and settings.tax_tables is not None:
        return settings.tax_tables
    return _default_tax_tables()


def adjust_brackets(brackets: List[Dict], multiplier: float) -> List[Dict]:
    """Index bracket limits by ``multiplier``; rates are unchanged."""
    adjusted = []
    for bracket in brackets or []:
        b = dict(bracket)
        if "up_to" in b:
            b["up_to"] = b["up_to"] * multiplier
        if "over" in b:
            b["over"] = b["over"] * multiplier
        adjusted.append(b)
    return adjusted


def adjust_credits(jurisdiction: Dict, multiplier: float) -> Dict[str, float]:
    """Index the credit amounts of one jurisdiction.

    The pension income amount is a fixed statutory figure and is not indexed.
    """
    credits = jurisdiction.get("credits", {})
    return {
        "bpa": jurisdiction.get("bpa", 0.0) * multiplier,
        "age_amount": credits.get("age_amount", 0.0) * multiplier,
        "age_amount_threshold": credits.get(
            "age_amount_threshold", config.DEFAULT_AGE_AMOUNT_THRESHOLD
        )
        * multiplier,
        "pension_income_amount": credits.get("pension_income_amount", 0.0),
        "medical_expense_threshold_limit": credits.get(
            "medical_expense_threshold_limit", 0.0
        )
        * multiplier,
    }


def compute_bracket_tax(income: float, brackets: List[Dict]) -> float:
    """Progressive tax on ``income`` before credits."""
    tax = 0.0
    lower = 0.0
    for bracket in brackets:
        upper = bracket.get("up_to", float("inf"))
        if income > lower:
            tax += (min(income, upper) - lower) * bracket["rate"]
        if income <= upper:
            break
        lower = upper
    return tax


def ontario_surtax(tax: float, surtax: Dict[str, float], multiplier: float = 1.0) -> float:
    """Two-tier Ontario surtax charged on provincial tax itself."""
    threshold1 = surtax["threshold1"] * multiplier
    threshold2 = surtax["threshold2"] * multiplier
    amount = 0.0
    if tax > threshold1:
        amount += (min(tax, threshold2) - threshold1) * surtax["rate1"]
    if tax > threshold2:
        amount += (tax - threshold2) * surtax["rate2"]
    return amount


def calculate_single_tax(
    taxable_income: float,
    age: int,
    brackets: List[Dict],
    credits: Dict[str, float],
    income_details: Optional[IncomeBreakdown] = None,
    split_pension_received: float = 0.0,
    medical_expenses: float = 0.0,
    jurisdiction: str = "FED",
    settings: Optional[Settings] = None,
    year: Optional[int] = None,
) -> float:
    """Compute one person's federal or provincial tax.

    Parameters
    ----------
    taxable_income : float
        Income after the OAS clawback deduction.
    age : int
        Age in the tax year; the age and pension amounts need 65 or more.
    brackets, credits : list, dict
        Already indexed brackets and credits (see ``adjust_brackets`` and
        ``adjust_credits``).
    income_details : IncomeBreakdown, optional
        Supplies the person's RRIF/LIF withdrawals and any pension income
        transferred to a spouse.
    split_pension_received : float, optional
        Pension income allocated to this person by a spouse.
    medical_expenses : float, optional
        Total eligible medical expenses for the year.
    jurisdiction : str, optional
        ``"FED"`` or a province code.  Only ``"ON"`` carries a surtax.
    settings : Settings, optional
        Supplies the COLA used to index surtax thresholds and the tax tables.
    year : int, optional
        Tax year, used with ``settings`` to index surtax thresholds.

    Returns
    -------
    float
        Tax payable, never negative.
    """
    if taxable_income <= 0:
        return 0.0

    tax = compute_bracket_tax(taxable_income, brackets)

    credit_base = credits.get("bpa", 0.0)
    if age >= 65:
        reduction = max(
            0.0,
            (taxable_income - credits.get("age_amount_threshold", float("inf")))
            * config.AGE_AMOUNT_REDUCTION_RATE,
        )
        credit_base += max(0.0, credits.get("age_amount", 0.0) - reduction)

        eligible = split_pension_received
        if income_details is not None:
            eligible += (
                income_details.taxable_withdrawals - income_details.pension_split_transferred
            )
        if eligible > 0:
            credit_base += min(eligible, credits.get("pension_income_amount", 0.0))

    if medical_expenses > 0:
        floor = min(
            taxable_income * config.MEDICAL_EXPENSE_INCOME_RATE,
            credits.get("medical_expense_threshold_limit", 0.0),
        )
        credit_base += max(0.0, medical_expenses - floor)

    lowest_rate = brackets[0]["rate"] if brackets else 0.15
    tax = max(0.0, tax - credit_base * lowest_rate)

    if jurisdiction == "ON":
        surtax = tax_tables_for(settings).get("ON", {}).get("surtax")
        if surtax:
            multiplier = 1.0
            if settings is not None and year is not None:
                multiplier = settings.cola_multiplier(year)
            tax += ontario_surtax(tax, surtax, multiplier)
    return tax


def taxable_capital_gains(realized: float) -> float:
    """Portion of a person's realized gains for the year that is taxable."""
    if realized <= 0:
        return 0.0
    lower = min(realized, config.CAPITAL_GAINS_TIER_LIMIT)
    upper = max(0.0, realized - config.CAPITAL_GAINS_TIER_LIMIT)
    return (
        lower * config.CAPITAL_GAINS_LOWER_INCLUSION
        + upper * config.CAPITAL_GAINS_UPPER_INCLUSION
    )


def realized_nonreg_gains(person: PersonYear, unrealized_gains: float) -> float:
    """Gains realized by this year's non-registered withdrawal.

    The withdrawal realizes gains in proportion to the unrealized share of the
    balance available before withdrawals.
    """
    withdrawn = person.withdrawals.get("nonreg", 0.0)
    available = person.opening.get("nonreg", 0.0) + person.growth.get("nonreg", 0.0)
    if withdrawn <= 0 or available <= 0:
        return 0.0
    ratio = max(0.0, min(1.0, unrealized_gains / available))
    return withdrawn * ratio


def _person_net_income(person: PersonYear, taxable_gains: float) -> float:
    inc = person.income
    return (
        inc.cpp
        + inc.oas
        + inc.other
        + person.withdrawals.get("rrsp", 0.0)
        + person.withdrawals.get("lif", 0.0)
        + taxable_gains
    )


def calculate_taxes(
    record: YearRecord,
    scenario: Scenario,
    settings: Settings,
    unrealized_gains_user: float,
    unrealized_gains_spouse: float = 0.0,
    transfer_from_user: float = 0.0,
    transfer_from_spouse: float = 0.0,
) -> TaxResult:
    """Household tax for the year without modifying ``record``.

    ``record`` must already carry this year's income (OAS before clawback) and
    withdrawals.  ``transfer_from_user`` moves that much eligible pension
    income from the user to the spouse; ``transfer_from_spouse`` the reverse.
    """
    year = record.year
    multiplier = settings.cola_multiplier(year)
    oas = benefit_tables(settings)["OAS"]
    clawback_threshold = oas["clawback_threshold"] * multiplier
    clawback_rate = oas.get("clawback_rate", 0.15)

    people = [(record.user, unrealized_gains_user, transfer_from_user, transfer_from_spouse)]
    if record.spouse is not None:
        people.append(
            (record.spouse, unrealized_gains_spouse, transfer_from_spouse, transfer_from_user)
        )

    results: List[PersonTax] = []
    net_income_for_gis = 0.0
    for person, gains, transferred, received in people:
        realized = realized_nonreg_gains(person, gains)
        taxable_gains = taxable_capital_gains(realized)
        pt = PersonTax(
            realized_nonreg_gains=realized,
            taxable_nonreg_gains=taxable_gains,
            taxable_withdrawals=person.withdrawals.get("rrsp", 0.0)
            + person.withdrawals.get("lif", 0.0),
            split_received=received,
            split_transferred=transferred,
        )
        own_net = _person_net_income(person, taxable_gains)
        pt.net_income = own_net - transferred + received
        pt.oas_clawback = oas_clawback(
            pt.net_income, person.income.oas, clawback_threshold, clawback_rate
        )
        pt.oas_after_clawback = max(0.0, person.income.oas - pt.oas_clawback)
        pt.taxable_income = max(0.0, pt.net_income - pt.oas_clawback)
        net_income_for_gis += own_net + person.income.gis
        results.append(pt)

    province = settings.province
    tables = tax_tables_for(settings)
    if "FED" not in tables or province not in tables:
        logger.error(
            "Tax data missing for federal or province %s in year %s", province, year
        )
        return TaxResult(
            user=results[0],
            spouse=results[1] if len(results) > 1 else None,
            net_income_for_gis=net_income_for_gis,
        )

    fed_brackets = adjust_brackets(tables["FED"]["brackets"], multiplier)
    prov_brackets = adjust_brackets(tables[province]["brackets"], multiplier)
    fed_credits = adjust_credits(tables["FED"], multiplier)
    prov_credits = adjust_credits(tables[province], multiplier)

    for (person, _, transferred, received), pt in zip(people, results):
        details = replace(
            person.income,
            taxable_withdrawals=pt.taxable_withdrawals,
            pension_split_transferred=transferred,
        )
        pt.federal_tax = calculate_single_tax(
            pt.taxable_income,
            person.age,
            fed_brackets,
            fed_credits,
            details,
            received,
            person.medical_expenses,
            "FED",
            settings,
            year,
        )
        pt.provincial_tax = calculate_single_tax(
            pt.taxable_income,
            person.age,
            prov_brackets,
            prov_credits,
            details,
            received,
            person.medical_expenses,
            province,
            settings,
            year,
        )

    return TaxResult(
        user=results[0],
        spouse=results[1] if len(results) > 1 else None,
        net_income_for_gis=net_income_for_gis,
    )


def _apply_person(person: PersonYear, pt: PersonTax) -> None:
    person.realized_nonreg_gains = pt.realized_nonreg_gains
    person.income.taxable_nonreg_gains = pt.taxable_nonreg_gains
    person.income.taxable_withdrawals = pt.taxable_withdrawals
    person.income.pension_split_received = pt.split_received
    person.income.pension_split_transferred = pt.split_transferred
    person.income.oas = pt.oas_after_clawback
    person.net_income = pt.net_income
    person.oas_clawback = pt.oas_clawback
    person.taxable_income = pt.taxable_income
    person.federal_tax = pt.federal_tax
    person.provincial_tax = pt.provincial_tax


def apply_taxes(record: YearRecord, result: TaxResult) -> None:
    """Copy a ``TaxResult`` onto the year record."""
    _apply_person(record.user, result.user)
    if record.spouse is not None and result.spouse is not None:
        _apply_person(record.spouse, result.spouse)
    record.tax_payable = result.total_tax
    record.net_income_for_gis = result.net_income_for_gis


__all__ = [
    "adjust_brackets",
    "adjust_credits",
    "compute_bracket_tax",
    "ontario_surtax",
    "calculate_single_tax",
    "taxable_capital_gains",
    "realized_nonreg_gains",
    "calculate_taxes",
    "apply_taxes",
    "tax_tables_for",
    "_load_tax_tables",
]
