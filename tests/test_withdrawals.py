"""Unit tests for the withdrawal step."""

import logging
import math

from ca_retirement.calculators.withdrawals import AccountPool, active_phase, perform_withdrawals
from ca_retirement.models import WithdrawalPhase, zero_accounts


def _pool(age, province="ON", **opening):
    balances = zero_accounts()
    balances.update(opening)
    return AccountPool.create(age, dict(balances), balances, province)


def _strategy(*order, start=55, end=100):
    return [WithdrawalPhase(start_age=start, end_age=end, order=list(order))]


def test_draws_follow_phase_order():
    pool = _pool(66, rrsp=10000, tfsa=5000)
    unmet = perform_withdrawals(12000, [pool], _strategy("tfsa", "rrsp"), 66)
    assert unmet == 0.0
    assert pool.withdrawals["tfsa"] == 5000
    assert pool.withdrawals["rrsp"] == 7000
    assert pool.balances["rrsp"] == 3000


def test_user_is_drawn_before_spouse():
    user = _pool(66, tfsa=5000)
    spouse = _pool(64, tfsa=5000)
    perform_withdrawals(8000, [user, spouse], _strategy("tfsa"), 66)
    assert user.withdrawals["tfsa"] == 5000
    assert spouse.withdrawals["tfsa"] == 3000


def test_account_order_takes_priority_over_person():
    user = _pool(66, rrsp=10000)
    spouse = _pool(66, tfsa=10000)
    perform_withdrawals(5000, [user, spouse], _strategy("tfsa", "rrsp"), 66)
    assert spouse.withdrawals["tfsa"] == 5000
    assert user.withdrawals["rrsp"] == 0.0


def test_unmet_shortfall_is_reported(caplog):
    pool = _pool(66, tfsa=10000)
    with caplog.at_level(logging.WARNING):
        unmet = perform_withdrawals(20000, [pool], _strategy("tfsa"), 66, year=2030)
    assert unmet == 10000
    assert pool.balances["tfsa"] == 0.0
    assert "could not be covered" in caplog.text


def test_no_active_phase_leaves_shortfall_unmet():
    pool = _pool(66, tfsa=10000)
    unmet = perform_withdrawals(5000, [pool], _strategy("tfsa", start=70, end=80), 66)
    assert unmet == 5000
    assert pool.withdrawals["tfsa"] == 0.0
    assert active_phase(_strategy("tfsa", start=70, end=80), 66) is None


def test_lif_withdrawal_capped_at_provincial_maximum():
    pool = _pool(65, lif=100000)
    unmet = perform_withdrawals(10000, [pool], _strategy("lif"), 65)
    assert math.isclose(pool.withdrawals["lif"], 4000.0)
    assert math.isclose(unmet, 6000.0)


def test_minimums_enforced_without_shortfall():
    pool = _pool(71, rrsp=100000)
    unmet = perform_withdrawals(0.0, [pool], _strategy("tfsa"), 71)
    assert unmet == 0.0
    assert math.isclose(pool.withdrawals["rrsp"], 5280.0)


def test_lif_minimum_limited_by_maximum():
    """At 71 in Ontario the LIF maximum (1/19) is below the RRIF minimum."""
    pool = _pool(71, lif=100000)
    perform_withdrawals(0.0, [pool], _strategy(), 71)
    assert math.isclose(pool.withdrawals["lif"], 100000 / 19)


def test_minimum_counts_shortfall_draws():
    pool = _pool(72, rrsp=100000)
    perform_withdrawals(10000, [pool], _strategy("rrsp"), 72)
    assert pool.withdrawals["rrsp"] == 10000


def test_withdrawal_never_exceeds_opening_balance():
    opening = zero_accounts()
    opening["rrsp"] = 100000
    balances = dict(opening, rrsp=110000)
    pool = AccountPool.create(66, opening, balances)
    unmet = perform_withdrawals(200000, [pool], _strategy("rrsp"), 66)
    assert pool.withdrawals["rrsp"] == 100000
    assert pool.balances["rrsp"] == 10000
    assert unmet == 100000
