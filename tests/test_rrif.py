"""Unit tests for the RRIF minimum and LIF maximum schedules."""

import math

from ca_retirement.calculators import rrif


def test_no_minimum_before_71():
    assert rrif.rrif_minimum_rate(70) == 0.0
    assert rrif.minimum_withdrawal(100000, 65) == 0.0


def test_minimum_rates():
    assert rrif.rrif_minimum_rate(71) == 0.0528
    assert rrif.rrif_minimum_rate(94) == 0.1879
    assert rrif.rrif_minimum_rate(95) == 0.20
    assert rrif.rrif_minimum_rate(103) == 0.20
    assert math.isclose(rrif.minimum_withdrawal(100000, 71), 5280.0)
    assert rrif.minimum_withdrawal(0, 80) == 0.0


def test_minimum_rates_increase_with_age():
    rates = [rrif.rrif_minimum_rate(age) for age in range(71, 96)]
    assert rates == sorted(rates)


def test_lif_factor_below_55_is_zero():
    for province in ("ON", "BC", "AB"):
        assert rrif.lif_maximum_factor(54, province) == 0.0


def test_ontario_lif_factors():
    assert math.isclose(rrif.lif_maximum_factor(65, "ON"), 1 / 25)
    assert rrif.lif_maximum_factor(80, "ON") == 0.088
    assert rrif.lif_maximum_factor(90, "ON") == 0.200
    assert rrif.lif_maximum_factor(97, "ON") == 0.20


def test_british_columbia_and_alberta_factors():
    assert rrif.lif_maximum_factor(65, "BC") == 0.0819
    assert rrif.lif_maximum_factor(96, "BC") == 0.20
    assert rrif.lif_maximum_factor(65, "AB") == 0.0738
    assert rrif.lif_maximum_factor(89, "AB") == 1.0
    assert rrif.lif_maximum_factor(95, "AB") == 1.0


def test_unmodelled_province_uses_ontario():
    assert rrif.lif_maximum_factor(70, "QC") == rrif.lif_maximum_factor(70, "ON")


def test_lif_maximum_withdrawal():
    assert math.isclose(rrif.lif_maximum_withdrawal(100000, 65, "ON"), 4000.0)
    assert rrif.lif_maximum_withdrawal(0, 65, "ON") == 0.0


def test_tables_built_once():
    assert rrif._rrif_minimum_table() is rrif._rrif_minimum_table()
    assert rrif._ontario_lif_table() is rrif._ontario_lif_table()
