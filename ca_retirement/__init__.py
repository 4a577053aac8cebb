"""Canadian household retirement simulator."""

from .calculators.breakeven import run_break_even
from .calculators.engine import (
    run_full_optimized_simulation,
    run_full_simulation,
    scenario_metrics,
    simulate_scenario,
)
from .calculators.monte_carlo import (
    run_monte_carlo_simulation,
    run_optimized_monte_carlo_simulation,
)
from .components.inputs import dump_saved_state, load_saved_state, scenario_input_from_dict
from .errors import OptimizerUnavailableError, ScenarioValidationError, SimulationPeriodError

__version__ = "1.0.0"

__all__ = [
    "simulate_scenario",
    "run_full_simulation",
    "run_full_optimized_simulation",
    "scenario_metrics",
    "run_monte_carlo_simulation",
    "run_optimized_monte_carlo_simulation",
    "run_break_even",
    "scenario_input_from_dict",
    "load_saved_state",
    "dump_saved_state",
    "ScenarioValidationError",
    "SimulationPeriodError",
    "OptimizerUnavailableError",
]
