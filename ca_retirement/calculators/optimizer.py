"""Pension income splitting optimizer.

Spouses aged 65 or more may allocate up to half of their eligible pension
income (here, RRIF and LIF withdrawals) to the other spouse.  For each year the
optimizer tries a grid of transfer fractions in both directions and keeps the
one with the lowest household tax.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from .. import config
from ..models import Scenario, Settings, SplitDecision, YearRecord
from .taxes import calculate_taxes


def identify_eligible_pension_income(
    withdrawals_user: Dict[str, float],
    withdrawals_spouse: Optional[Dict[str, float]],
    user_age: int,
    spouse_age: Optional[int],
) -> Tuple[float, float]:
    """Return the (user, spouse) pension income that may be split.

    Nothing is eligible without a spouse.
    """
    if withdrawals_spouse is None or spouse_age is None:
        return 0.0, 0.0

    def _eligible(withdrawals: Dict[str, float], age: int) -> float:
        if age < config.PENSION_SPLIT_MIN_AGE:
            return 0.0
        return withdrawals.get("rrsp", 0.0) + withdrawals.get("lif", 0.0)

    return _eligible(withdrawals_user, user_age), _eligible(withdrawals_spouse, spouse_age)


def calculate_optimal_split(
    record: YearRecord,
    scenario: Scenario,
    settings: Settings,
    gains_user: float,
    gains_spouse: float,
    eligible_user: float,
    eligible_spouse: float,
    steps: int = config.OPTIMIZER_STEPS,
) -> SplitDecision:
    """Search transfer fractions ``0.5 * i / steps`` for ``i`` in ``0..steps``.

    Each direction is searched separately.  Ties keep the earlier (smaller)
    transfer, so no split is chosen unless it strictly lowers tax.
    """
    best = SplitDecision(
        total_tax=calculate_taxes(record, scenario, settings, gains_user, gains_spouse).total_tax
    )
    if record.spouse is None or steps <= 0:
        return best

    for direction, eligible in (("user", eligible_user), ("spouse", eligible_spouse)):
        if eligible <= 0:
            continue
        for i in range(1, steps + 1):
            amount = eligible * config.MAX_PENSION_SPLIT_FRACTION * i / steps
            from_user = amount if direction == "user" else 0.0
            from_spouse = amount if direction == "spouse" else 0.0
            tax = calculate_taxes(
                record, scenario, settings, gains_user, gains_spouse, from_user, from_spouse
            ).total_tax
            if tax < best.total_tax:
                best = SplitDecision(from_user, from_spouse, tax)
    return best


def optimal_split_strategy(steps: int = config.OPTIMIZER_STEPS, optimizer=None):
    """Build a split policy for ``iter_years``.

    ``optimizer`` is any object exposing ``identify_eligible_pension_income``
    and ``calculate_optimal_split``; it defaults to this module.
    """
    if optimizer is None:
        identify, optimize = identify_eligible_pension_income, calculate_optimal_split
    else:
        identify = optimizer.identify_eligible_pension_income
        optimize = optimizer.calculate_optimal_split

    def _split(record, scenario, settings, gains_user, gains_spouse):
        spouse = record.spouse
        eligible_user, eligible_spouse = identify(
            record.user.withdrawals,
            spouse.withdrawals if spouse else None,
            record.user.age,
            spouse.age if spouse else None,
        )
        return optimize(
            record,
            scenario,
            settings,
            gains_user,
            gains_spouse,
            eligible_user,
            eligible_spouse,
            steps,
        )

    return _split


__all__ = [
    "identify_eligible_pension_income",
    "calculate_optimal_split",
    "optimal_split_strategy",
]
