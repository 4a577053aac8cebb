"""Default assumptions shared by the calculators.

Dollar amounts in the data tables are expressed in base-year dollars and are
indexed forward from ``BASE_YEAR``.
"""

from pathlib import Path

BASE_YEAR = 2025

DATA_DIR = Path(__file__).resolve().parent / "data"
TAX_TABLE_PATH = DATA_DIR / "tax_tables.json"
BENEFITS_PATH = DATA_DIR / "benefits.json"

# Household defaults applied at the input boundary
DEFAULT_PROVINCE = "ON"
DEFAULT_LIFE_EXPECTANCY = 95
DEFAULT_COLA = 0.025
DEFAULT_RETIREMENT_AGE = 65

ACCOUNT_TYPES = ("rrsp", "tfsa", "nonreg", "lif")
MAX_PHASES = 3

# Government benefit timing
CPP_MIN_START_AGE = 60
CPP_MAX_START_AGE = 70
CPP_EARLY_REDUCTION_PER_MONTH = 0.006
CPP_LATE_INCREASE_PER_MONTH = 0.007
OAS_MIN_START_AGE = 65
OAS_MAX_START_AGE = 70
OAS_DEFERRAL_PER_MONTH = 0.006
OAS_FULL_RESIDENCY_YEARS = 40
OAS_AGE_75_BOOST = 0.10
GIS_MIN_AGE = 65

# Registered account rules
RRIF_MIN_AGE = 71
LIF_MIN_AGE = 55

# Capital gains inclusion (per person per year)
CAPITAL_GAINS_TIER_LIMIT = 250_000.0
CAPITAL_GAINS_LOWER_INCLUSION = 0.5
CAPITAL_GAINS_UPPER_INCLUSION = 2.0 / 3.0

# Credit rules
AGE_AMOUNT_REDUCTION_RATE = 0.15
MEDICAL_EXPENSE_INCOME_RATE = 0.03
DEFAULT_AGE_AMOUNT_THRESHOLD = 42335

# Pension income splitting
PENSION_SPLIT_MIN_AGE = 65
MAX_PENSION_SPLIT_FRACTION = 0.5
OPTIMIZER_STEPS = 50
OPTIMIZER_STEPS_MONTE_CARLO = 10

# Monte Carlo progress reporting
MAX_PROGRESS_INTERVAL = 50
