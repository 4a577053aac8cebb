"""Withdrawal engine.

Covers the household's cash shortfall from the accounts named by the active
withdrawal phase, user first then spouse for each account type, and then tops
up RRIF/LIF withdrawals to the legislated minimums.  LIF draws never exceed the
provincial maximum and no account pays out more than its opening balance or
its current balance in a year.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..config import RRIF_MIN_AGE
from ..models import WithdrawalPhase, zero_accounts
from .rrif import lif_maximum_withdrawal, minimum_withdrawal

logger = logging.getLogger(__name__)


@dataclass
class AccountPool:
    """One person's accounts during the withdrawal step.

    ``balances`` is the live state carried through the simulation and is
    decremented in place.
    """

    age: int
    opening: Dict[str, float]
    balances: Dict[str, float]
    lif_max: float = 0.0
    withdrawals: Dict[str, float] = field(default_factory=zero_accounts)

    @classmethod
    def create(cls, age: int, opening: Dict[str, float], balances: Dict[str, float],
               province: str = "ON") -> "AccountPool":
        return cls(
            age=age,
            opening=opening,
            balances=balances,
            lif_max=lif_maximum_withdrawal(opening.get("lif", 0.0), age, province),
        )

    def room(self, account: str) -> float:
        taken = self.withdrawals.get(account, 0.0)
        room = min(
            self.balances.get(account, 0.0),
            self.opening.get(account, 0.0) - taken,
        )
        if account == "lif":
            room = min(room, self.lif_max - taken)
        return max(0.0, room)

    def draw(self, account: str, amount: float) -> float:
        amount = min(amount, self.room(account))
        if amount <= 0:
            return 0.0
        self.balances[account] -= amount
        self.withdrawals[account] += amount
        return amount

    def top_up_minimums(self) -> None:
        """Force RRIF/LIF withdrawals up to the legislated minimum."""
        if self.age < RRIF_MIN_AGE:
            return
        for account in ("rrsp", "lif"):
            required = minimum_withdrawal(self.opening.get(account, 0.0), self.age)
            missing = required - self.withdrawals.get(account, 0.0)
            if missing > 0:
                self.draw(account, missing)


def active_phase(
    strategy: Sequence[WithdrawalPhase], age: int
) -> Optional[WithdrawalPhase]:
    """First phase whose age window contains ``age``."""
    for phase in strategy:
        if phase.covers(age):
            return phase
    return None


def cover_shortfall(
    shortfall: float,
    pools: List[AccountPool],
    order: Sequence[str],
) -> float:
    """Draw from ``pools`` in account ``order``; return the uncovered amount."""
    remaining = shortfall
    for account in order:
        for pool in pools:
            if remaining <= 0:
                return 0.0
            remaining -= pool.draw(account, remaining)
    return max(0.0, remaining)


def perform_withdrawals(
    shortfall: float,
    pools: List[AccountPool],
    strategy: Sequence[WithdrawalPhase],
    phase_age: int,
    year: Optional[int] = None,
) -> float:
    """Run the withdrawal step for one year.

    Parameters
    ----------
    shortfall : float
        Household cash still needed after non-withdrawal income.
    pools : list of AccountPool
        User pool first, then the spouse's pool if there is one.
    strategy : sequence of WithdrawalPhase
        Phases of the withdrawal strategy.
    phase_age : int
        The user's age, which selects the phase for the whole household.
    year : int, optional
        Only used for log messages.

    Returns
    -------
    float
        Shortfall that could not be covered.
    """
    unmet = shortfall
    phase = active_phase(strategy, phase_age)
    if phase is not None and shortfall > 0:
        unmet = cover_shortfall(shortfall, pools, phase.order)
    if unmet > 0:
        logger.warning("Year %s: income shortfall of $%.2f could not be covered", year, unmet)

    for pool in pools:
        pool.top_up_minimums()
    return unmet


__all__ = ["AccountPool", "active_phase", "cover_shortfall", "perform_withdrawals"]
