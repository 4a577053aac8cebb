"""Year-by-year simulation loop.

Every simulated year runs the same five steps in a fixed order:

1. growth on the balances carried over from last year (skipped in the first
   year, whose balances are taken as of retirement);
2. non-withdrawal income (CPP, OAS, GIS, other items);
3. expenses, plus last year's tax, and the resulting cash shortfall;
4. withdrawals to cover the shortfall, then RRIF/LIF minimums;
5. tax, optionally with pension income split between spouses.

``iter_years`` is shared by the deterministic run and every Monte Carlo trial;
callers vary only the source of annual returns and the pension-split policy.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable, Dict, Iterator, List, Optional

from ..config import ACCOUNT_TYPES
from ..errors import SimulationPeriodError
from ..models import (
    PersonYear,
    Scenario,
    ScenarioInput,
    Settings,
    SplitDecision,
    YearRecord,
    zero_accounts,
)
from .benefits import calculate_income, item_totals
from .optimizer import optimal_split_strategy
from .taxes import apply_taxes, calculate_taxes
from .withdrawals import AccountPool, active_phase, perform_withdrawals

logger = logging.getLogger(__name__)

ReturnsForYear = Callable[[int], Dict[str, float]]
SplitStrategy = Callable[[YearRecord, Scenario, Settings, float, float], SplitDecision]


def simulation_years(scenario: Scenario, settings: Settings) -> int:
    """Number of years simulated; raises if there are none."""
    years = settings.max_age - scenario.retirement_age + 1
    if years <= 0:
        raise SimulationPeriodError(
            f"Simulation period is zero or negative years "
            f"(retirement age {scenario.retirement_age}, max age {settings.max_age})"
        )
    return years


def fixed_returns(scenario: Scenario) -> ReturnsForYear:
    returns = dict(scenario.returns)
    return lambda _year_index: returns


def apply_growth(person: PersonYear, balances: Dict[str, float], rates: Dict[str, float]) -> None:
    """Step 1: grow ``balances`` in place and record the growth."""
    for acct in ACCOUNT_TYPES:
        growth = balances[acct] * rates.get(acct, 0.0)
        person.growth[acct] = growth
        balances[acct] += growth


def calculate_expenses(record: YearRecord, scenario: Scenario, settings: Settings) -> None:
    """Step 3: expenses, total cash needed and the shortfall.

    The phase budget is indexed by the household COLA from the base year;
    expense items use their own COLA.  Last year's tax is paid this year.
    """
    year = record.year
    phase = active_phase(scenario.withdrawal_strategy, record.user_age)
    phase_expenses = phase.expenses if phase is not None else 0.0
    expenses = phase_expenses * (1 + settings.cola) ** max(0, year - settings.base_year)

    people = [(record.user, scenario.user)]
    if record.spouse is not None and scenario.spouse is not None:
        people.append((record.spouse, scenario.spouse))
    for person_year, person in people:
        totals = item_totals(person, person_year.age, year, settings.base_year)
        expenses += totals["expense"]
        person_year.medical_expenses = totals["medical"]

    record.expenses = expenses
    record.total_cash_needed = expenses + record.prior_year_tax
    record.shortfall = max(0.0, record.total_cash_needed - record.income_total)


def iter_years(
    scenario: Scenario,
    settings: Settings,
    returns_for_year: Optional[ReturnsForYear] = None,
    split_strategy: Optional[SplitStrategy] = None,
) -> Iterator[YearRecord]:
    """Yield one ``YearRecord`` per simulated year.

    ``returns_for_year`` receives the zero-based index of the simulated year
    and returns the rate per account type.  ``split_strategy`` decides the
    pension income transfer for the year; without one no income is split.
    The scenario itself is never mutated.
    """
    returns_for_year = returns_for_year or fixed_returns(scenario)
    user, spouse = scenario.user, scenario.spouse

    balances_user = copy.deepcopy(user.assets)
    balances_spouse = copy.deepcopy(spouse.assets) if spouse else None
    for bal in (balances_user, balances_spouse):
        if bal is not None:
            for acct, value in zero_accounts().items():
                bal.setdefault(acct, value)
    gains_user = user.initial_nonreg_gains
    gains_spouse = spouse.initial_nonreg_gains if spouse else 0.0
    prior_tax = 0.0
    prior_income_for_gis = 0.0

    first_year = user.birth_year + scenario.retirement_age
    last_year = user.birth_year + settings.max_age
    for index, year in enumerate(range(first_year, last_year + 1)):
        record = YearRecord(
            year=year,
            user=PersonYear(age=user.age_in(year), opening=dict(balances_user)),
            spouse=(
                PersonYear(age=spouse.age_in(year), opening=dict(balances_spouse))
                if spouse
                else None
            ),
            prior_year_tax=prior_tax,
        )

        if year != first_year:
            rates = returns_for_year(index)
            apply_growth(record.user, balances_user, rates)
            if record.spouse is not None:
                apply_growth(record.spouse, balances_spouse, rates)
        gains_user += record.user.growth["nonreg"]
        if record.spouse is not None:
            gains_spouse += record.spouse.growth["nonreg"]

        calculate_income(record, scenario, settings, prior_income_for_gis)
        calculate_expenses(record, scenario, settings)

        pools = [
            AccountPool.create(record.user.age, record.user.opening, balances_user,
                               settings.province)
        ]
        if record.spouse is not None:
            pools.append(
                AccountPool.create(record.spouse.age, record.spouse.opening,
                                   balances_spouse, settings.province)
            )
        record.unmet_shortfall = perform_withdrawals(
            record.shortfall, pools, scenario.withdrawal_strategy, record.user.age, year
        )
        record.user.withdrawals = pools[0].withdrawals
        if record.spouse is not None:
            record.spouse.withdrawals = pools[1].withdrawals

        split = SplitDecision()
        if split_strategy is not None and record.spouse is not None:
            split = split_strategy(record, scenario, settings, gains_user, gains_spouse)
        result = calculate_taxes(
            record,
            scenario,
            settings,
            gains_user,
            gains_spouse,
            split.transfer_from_user,
            split.transfer_from_spouse,
        )
        apply_taxes(record, result)

        prior_tax = record.tax_payable
        prior_income_for_gis = record.net_income_for_gis
        gains_user = max(0.0, gains_user - record.user.realized_nonreg_gains)
        if record.spouse is not None:
            gains_spouse = max(0.0, gains_spouse - record.spouse.realized_nonreg_gains)

        record.user.closing = dict(balances_user)
        if record.spouse is not None:
            record.spouse.closing = dict(balances_spouse)
        yield record


def simulate_scenario(
    scenario: Scenario,
    settings: Settings,
    split_strategy: Optional[SplitStrategy] = None,
) -> List[YearRecord]:
    """Run the deterministic projection and return every year's record."""
    years = simulation_years(scenario, settings)
    logger.debug(
        "Simulating %s years: province %s, COLA %.2f%%",
        years,
        settings.province,
        settings.cola * 100,
    )
    return list(iter_years(scenario, settings, split_strategy=split_strategy))


def final_assets(records: List[YearRecord]) -> float:
    if not records:
        return 0.0
    return records[-1].total_closing


def scenario_metrics(records: List[YearRecord]) -> Dict[str, float]:
    """Headline figures used to compare scenarios."""
    return {
        "final_assets": final_assets(records),
        "total_income": sum(r.gross_income for r in records),
        "total_taxes": sum(r.tax_payable for r in records),
    }


def run_full_simulation(inputs_a: ScenarioInput, inputs_b: ScenarioInput) -> Dict[str, List[YearRecord]]:
    """Run scenarios A and B side by side."""
    logger.info("Running scenario A")
    results_a = simulate_scenario(inputs_a.scenario, inputs_a.settings())
    logger.info("Running scenario B")
    results_b = simulate_scenario(inputs_b.scenario, inputs_b.settings())
    return {"results_a": results_a, "results_b": results_b}


def run_full_optimized_simulation(
    inputs_a: ScenarioInput, inputs_b: ScenarioInput
) -> Dict[str, List[YearRecord]]:
    """Run A and B both without and with optimal pension income splitting."""
    strategy = optimal_split_strategy()
    out = {}
    for label, inputs in (("a", inputs_a), ("b", inputs_b)):
        settings = inputs.settings()
        out[f"{label}_base"] = simulate_scenario(inputs.scenario, settings)
        out[f"{label}_optimized"] = simulate_scenario(inputs.scenario, settings, strategy)
    return out


__all__ = [
    "simulation_years",
    "fixed_returns",
    "apply_growth",
    "calculate_expenses",
    "iter_years",
    "simulate_scenario",
    "final_assets",
    "scenario_metrics",
    "run_full_simulation",
    "run_full_optimized_simulation",
]
