"""Tests for the CPP start-age break-even analysis."""

import logging

import pytest

from ca_retirement.calculators import breakeven
from ca_retirement.errors import ScenarioValidationError
from ca_retirement.models import IncomeItem, Person, Scenario, Settings

ZERO_TAX_TABLES = {
    "FED": {"bpa": 0, "brackets": [{"over": 0, "rate": 0.0}], "credits": {}},
    "ON": {"bpa": 0, "brackets": [{"over": 0, "rate": 0.0}], "credits": {}},
}


def _scenario(**person_kw):
    return Scenario(user=Person(birth_year=1960, cpp_at_65=10000, **person_kw))


def _settings(max_age=95, tax_tables=ZERO_TAX_TABLES):
    return Settings(province="ON", max_age=max_age, cola=0.0, tax_tables=tax_tables)


def test_break_even_interpolated_within_the_year():
    """Five years of $10,000 against $4,200 a year more from 70."""
    result = breakeven.run_break_even(_scenario(), _settings(), 65, 70)
    assert result.head_start_pot == pytest.approx(50000)
    # 11 years recover 46,200; the remaining 3,800 falls inside age 81
    assert result.break_even_age == 80.9

    assert len(result.details) == 31
    first = result.details[0]
    assert first.age == 65
    assert first.late_after_tax_cpp == 0.0
    assert first.pot_value == pytest.approx(50000)
    assert first.annual_difference == pytest.approx(-10000)
    at_70 = result.details[5]
    assert at_70.annual_difference == pytest.approx(4200)
    assert at_70.cumulative_difference == pytest.approx(4200)


def test_never_breaks_even(caplog):
    with caplog.at_level(logging.INFO):
        result = breakeven.run_break_even(_scenario(), _settings(max_age=72), 60, 70)
    assert result.break_even_age == -1
    assert result.head_start_pot == pytest.approx(64000)
    assert result.details[-1].cumulative_difference == pytest.approx(3 * 7800)
    assert "never catches up" in caplog.text


def test_argument_order_does_not_matter():
    forward = breakeven.run_break_even(_scenario(), _settings(), 65, 70)
    backward = breakeven.run_break_even(_scenario(), _settings(), 70, 65)
    assert forward == backward


def test_investment_return_grows_the_pot():
    result = breakeven.run_break_even(_scenario(), _settings(), 65, 70, investment_return=0.05)
    assert result.head_start_pot == pytest.approx(10000 * (1.05 ** 5 - 1) / 0.05)
    assert result.break_even_age > 80.9


def test_invalid_start_ages_rejected():
    with pytest.raises(ScenarioValidationError):
        breakeven.run_break_even(_scenario(), _settings(), 65, 65)
    with pytest.raises(ScenarioValidationError):
        breakeven.run_break_even(_scenario(), _settings(), 59, 65)


def test_tax_on_cpp_reduces_it():
    pension = IncomeItem(amount=60000, start_age=60, end_age=95)
    untaxed = breakeven.household_after_tax_cpp(_scenario(items=[pension]), _settings(), 2025, 65)
    assert untaxed == pytest.approx(10000)

    taxed = breakeven.household_after_tax_cpp(
        _scenario(items=[pension]), _settings(tax_tables=None), 2025, 65
    )
    assert 0 < taxed < 10000


def test_couple_both_start_at_the_compared_age():
    scenario = Scenario(
        user=Person(birth_year=1960, cpp_at_65=10000),
        spouse=Person(birth_year=1962, cpp_at_65=5000),
    )
    assert breakeven.household_after_tax_cpp(scenario, _settings(), 2025, 65) == pytest.approx(10000)
    assert breakeven.household_after_tax_cpp(scenario, _settings(), 2027, 65) == pytest.approx(15000)


def test_missing_tax_data_logs_and_skips_tax(caplog):
    settings = Settings(province="QC", max_age=95, cola=0.0)
    with caplog.at_level(logging.ERROR):
        value = breakeven.household_after_tax_cpp(_scenario(), settings, 2025, 65)
    assert value == pytest.approx(10000)
    assert "Tax data missing" in caplog.text
