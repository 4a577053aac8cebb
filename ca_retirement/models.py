"""Typed inputs and year-by-year outputs of the simulator.

Inputs (``ScenarioInput`` and the objects it holds) are built once at the
input boundary by :mod:`ca_retirement.components.inputs` and are never
mutated by the engine.  Outputs are one ``YearRecord`` per simulated year.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import (
    ACCOUNT_TYPES,
    BASE_YEAR,
    DEFAULT_RETIREMENT_AGE,
    OAS_FULL_RESIDENCY_YEARS,
)


def zero_accounts() -> Dict[str, float]:
    return {acct: 0.0 for acct in ACCOUNT_TYPES}


def sum_accounts(*balances: Optional[Dict[str, float]]) -> Dict[str, float]:
    """Add per-account dictionaries together, ignoring missing ones."""
    total = zero_accounts()
    for bal in balances:
        if not bal:
            continue
        for acct in ACCOUNT_TYPES:
            total[acct] += bal.get(acct, 0.0)
    return total


@dataclass
class IncomeItem:
    """A recurring income or expense stream owned by one person.

    ``amount`` is expressed in base-year dollars and indexed by ``cola``.
    """

    amount: float
    start_age: int
    end_age: int
    owner: str = "user"
    type: str = "income"
    description: str = ""
    cola: float = 0.0
    is_medical: bool = False

    def active_at(self, age: int) -> bool:
        return self.start_age <= age <= self.end_age


@dataclass
class Person:
    birth_year: int
    cpp_start_age: int = 65
    cpp_at_65: float = 0.0
    oas_start_age: int = 65
    # None means "not provided" and counts as full residency; 0 is a real value.
    years_in_canada: Optional[int] = None
    assets: Dict[str, float] = field(default_factory=zero_accounts)
    initial_nonreg_gains: float = 0.0
    items: List[IncomeItem] = field(default_factory=list)

    @property
    def residency_years(self) -> int:
        if self.years_in_canada is None:
            return OAS_FULL_RESIDENCY_YEARS
        return self.years_in_canada

    def age_in(self, year: int) -> int:
        return year - self.birth_year


@dataclass
class WithdrawalPhase:
    start_age: int
    end_age: int
    expenses: float = 0.0
    order: List[str] = field(default_factory=list)

    def covers(self, age: int) -> bool:
        return self.start_age <= age <= self.end_age


@dataclass
class Scenario:
    user: Person
    retirement_age: int = DEFAULT_RETIREMENT_AGE
    returns: Dict[str, float] = field(default_factory=zero_accounts)
    spouse: Optional[Person] = None
    withdrawal_strategy: List[WithdrawalPhase] = field(default_factory=list)

    @property
    def has_spouse(self) -> bool:
        return self.spouse is not None


@dataclass
class Settings:
    """Household-wide assumptions for one run.

    ``tax_tables`` and ``benefits`` override the packaged JSON data when
    provided.
    """

    province: str
    max_age: int
    cola: float
    base_year: int = BASE_YEAR
    tax_tables: Optional[Dict[str, Dict]] = None
    benefits: Optional[Dict[str, Dict]] = None

    def cola_multiplier(self, year: int) -> float:
        return (1.0 + self.cola) ** (year - self.base_year)


@dataclass
class ScenarioInput:
    province: str
    life_expectancy: int
    cola: float
    scenario: Scenario

    def settings(self, base_year: int = BASE_YEAR) -> Settings:
        return Settings(
            province=self.province,
            max_age=self.life_expectancy,
            cola=self.cola,
            base_year=base_year,
        )


@dataclass
class IncomeBreakdown:
    """Income received by one person in one year.

    ``oas`` holds the pre-clawback amount until the tax step replaces it with
    the amount actually received.
    """

    cpp: float = 0.0
    oas: float = 0.0
    gis: float = 0.0
    other: float = 0.0
    taxable_withdrawals: float = 0.0
    taxable_nonreg_gains: float = 0.0
    pension_split_received: float = 0.0
    pension_split_transferred: float = 0.0

    @property
    def non_withdrawal_total(self) -> float:
        return self.cpp + self.oas + self.gis + self.other


@dataclass
class PersonYear:
    age: int
    opening: Dict[str, float]
    growth: Dict[str, float] = field(default_factory=zero_accounts)
    withdrawals: Dict[str, float] = field(default_factory=zero_accounts)
    closing: Dict[str, float] = field(default_factory=zero_accounts)
    income: IncomeBreakdown = field(default_factory=IncomeBreakdown)
    medical_expenses: float = 0.0
    realized_nonreg_gains: float = 0.0
    net_income: float = 0.0
    taxable_income: float = 0.0
    oas_clawback: float = 0.0
    federal_tax: float = 0.0
    provincial_tax: float = 0.0

    @property
    def tax(self) -> float:
        return self.federal_tax + self.provincial_tax

    @property
    def total_withdrawals(self) -> float:
        return sum(self.withdrawals.values())


@dataclass
class YearRecord:
    year: int
    user: PersonYear
    spouse: Optional[PersonYear] = None
    expenses: float = 0.0
    prior_year_tax: float = 0.0
    total_cash_needed: float = 0.0
    shortfall: float = 0.0
    unmet_shortfall: float = 0.0
    tax_payable: float = 0.0
    net_income_for_gis: float = 0.0

    def people(self) -> List[PersonYear]:
        return [p for p in (self.user, self.spouse) if p is not None]

    @property
    def user_age(self) -> int:
        return self.user.age

    @property
    def spouse_age(self) -> Optional[int]:
        return self.spouse.age if self.spouse else None

    @property
    def opening_balance(self) -> Dict[str, float]:
        return sum_accounts(*(p.opening for p in self.people()))

    @property
    def closing_balance(self) -> Dict[str, float]:
        return sum_accounts(*(p.closing for p in self.people()))

    @property
    def growth(self) -> Dict[str, float]:
        return sum_accounts(*(p.growth for p in self.people()))

    @property
    def withdrawals(self) -> Dict[str, float]:
        return sum_accounts(*(p.withdrawals for p in self.people()))

    @property
    def income_total(self) -> float:
        """Non-withdrawal household income used to size the shortfall."""
        return sum(p.income.non_withdrawal_total for p in self.people())

    @property
    def total_closing(self) -> float:
        return sum(self.closing_balance.values())

    @property
    def gross_income(self) -> float:
        return sum(
            p.income.non_withdrawal_total + p.total_withdrawals for p in self.people()
        )


@dataclass
class PersonTax:
    realized_nonreg_gains: float = 0.0
    taxable_nonreg_gains: float = 0.0
    taxable_withdrawals: float = 0.0
    split_received: float = 0.0
    split_transferred: float = 0.0
    net_income: float = 0.0
    oas_clawback: float = 0.0
    oas_after_clawback: float = 0.0
    taxable_income: float = 0.0
    federal_tax: float = 0.0
    provincial_tax: float = 0.0

    @property
    def tax(self) -> float:
        return self.federal_tax + self.provincial_tax


@dataclass
class TaxResult:
    user: PersonTax
    spouse: Optional[PersonTax] = None
    net_income_for_gis: float = 0.0

    @property
    def total_tax(self) -> float:
        return self.user.tax + (self.spouse.tax if self.spouse else 0.0)


@dataclass
class SplitDecision:
    transfer_from_user: float = 0.0
    transfer_from_spouse: float = 0.0
    total_tax: Optional[float] = None


__all__ = [
    "zero_accounts",
    "sum_accounts",
    "IncomeItem",
    "Person",
    "WithdrawalPhase",
    "Scenario",
    "Settings",
    "ScenarioInput",
    "IncomeBreakdown",
    "PersonYear",
    "YearRecord",
    "PersonTax",
    "TaxResult",
    "SplitDecision",
]
