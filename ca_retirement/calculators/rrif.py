"""RRIF and LIF withdrawal limits.

Registered retirement income funds (RRIF) and life income funds (LIF) must pay
out a legislated minimum each year from age 71.  The minimum is a percentage of
the balance at the start of the year, rising with age until a flat 20% applies
from 95 onward.  LIFs are additionally capped by a provincial maximum factor
that applies from age 55.

Example
-------

>>> round(minimum_withdrawal(balance=100000, age=71), 2)
5280.0

>>> round(lif_maximum_factor(65, province="ON"), 4)
0.04
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict

from ..config import LIF_MIN_AGE, RRIF_MIN_AGE

RRIF_MIN_RATE_AGE_95_PLUS = 0.20


@lru_cache(maxsize=None)
def _rrif_minimum_table() -> Dict[int, float]:
    """Return the prescribed RRIF/LIF minimum withdrawal rates for ages 71-94."""
    return {
        71: 0.0528,
        72: 0.0540,
        73: 0.0553,
        74: 0.0567,
        75: 0.0582,
        76: 0.0598,
        77: 0.0617,
        78: 0.0636,
        79: 0.0658,
        80: 0.0681,
        81: 0.0708,
        82: 0.0738,
        83: 0.0771,
        84: 0.0808,
        85: 0.0851,
        86: 0.0899,
        87: 0.0955,
        88: 0.1021,
        89: 0.1099,
        90: 0.1192,
        91: 0.1306,
        92: 0.1449,
        93: 0.1634,
        94: 0.1879,
    }


@lru_cache(maxsize=None)
def _ontario_lif_table() -> Dict[int, float]:
    table = {age: 1.0 / (90 - age) for age in range(55, 80)}
    table.update(
        {
            80: 0.088,
            81: 0.093,
            82: 0.099,
            83: 0.106,
            84: 0.114,
            85: 0.123,
            86: 0.134,
            87: 0.147,
            88: 0.163,
            89: 0.183,
            90: 0.200,
        }
    )
    return table


@lru_cache(maxsize=None)
def _british_columbia_lif_table() -> Dict[int, float]:
    return {
        55: 0.0685, 56: 0.0697, 57: 0.0708, 58: 0.0720, 59: 0.0732,
        60: 0.0745, 61: 0.0759, 62: 0.0773, 63: 0.0788, 64: 0.0803,
        65: 0.0819, 66: 0.0835, 67: 0.0853, 68: 0.0871, 69: 0.0890,
        70: 0.0910, 71: 0.0931, 72: 0.0954, 73: 0.0978, 74: 0.1004,
        75: 0.1032, 76: 0.1062, 77: 0.1094, 78: 0.1129, 79: 0.1167,
        80: 0.1208, 81: 0.1253, 82: 0.1302, 83: 0.1356, 84: 0.1415,
        85: 0.1481, 86: 0.1554, 87: 0.1636, 88: 0.1728, 89: 0.1833,
        90: 0.1953, 91: 0.2000, 92: 0.2000, 93: 0.2000, 94: 0.2000,
    }


@lru_cache(maxsize=None)
def _alberta_lif_table() -> Dict[int, float]:
    return {
        55: 0.0651, 56: 0.0657, 57: 0.0663, 58: 0.0670, 59: 0.0677,
        60: 0.0685, 61: 0.0694, 62: 0.0704, 63: 0.0714, 64: 0.0726,
        65: 0.0738, 66: 0.0752, 67: 0.0767, 68: 0.0783, 69: 0.0802,
        70: 0.0822, 71: 0.0845, 72: 0.0871, 73: 0.0900, 74: 0.0934,
        75: 0.0971, 76: 0.1015, 77: 0.1066, 78: 0.1125, 79: 0.1196,
        80: 0.1282, 81: 0.1387, 82: 0.1519, 83: 0.1690, 84: 0.1919,
        85: 0.2240, 86: 0.2723, 87: 0.3529, 88: 0.5146, 89: 1.0000,
        90: 1.0000,
    }


# province -> (table factory, factor used beyond the last age in the table)
_LIF_TABLES = {
    "ON": (_ontario_lif_table, 0.20),
    "BC": (_british_columbia_lif_table, 0.20),
    "AB": (_alberta_lif_table, 1.00),
}


def rrif_minimum_rate(age: int) -> float:
    """Minimum withdrawal rate for a RRIF or LIF owner of ``age``.

    Returns zero below age 71.
    """
    if age < RRIF_MIN_AGE:
        return 0.0
    if age >= 95:
        return RRIF_MIN_RATE_AGE_95_PLUS
    return _rrif_minimum_table().get(age, 0.0)


def minimum_withdrawal(balance: float, age: int) -> float:
    """Compute the required minimum payment from an opening ``balance``."""
    if balance <= 0:
        return 0.0
    return balance * rrif_minimum_rate(age)


def lif_maximum_factor(age: int, province: str = "ON") -> float:
    """Maximum LIF withdrawal factor for ``age`` under ``province`` rules.

    Provinces without a modelled table use the Ontario schedule.

    Parameters
    ----------
    age : int
        Age of the LIF owner in the withdrawal year.
    province : str, optional
        Two-letter province code (default ``"ON"``).

    Returns
    -------
    float
        Fraction of the opening balance that may be withdrawn.  Zero below 55.
    """
    if age < LIF_MIN_AGE:
        return 0.0
    factory, beyond_table = _LIF_TABLES.get(province, _LIF_TABLES["ON"])
    table = factory()
    if age in table:
        return table[age]
    if age > max(table):
        return beyond_table
    return 0.0


def lif_maximum_withdrawal(balance: float, age: int, province: str = "ON") -> float:
    if balance <= 0:
        return 0.0
    return balance * lif_maximum_factor(age, province)


__all__ = [
    "rrif_minimum_rate",
    "minimum_withdrawal",
    "lif_maximum_factor",
    "lif_maximum_withdrawal",
]
