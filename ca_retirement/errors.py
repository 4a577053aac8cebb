"""Exceptions raised by the simulator."""


class ScenarioValidationError(ValueError):
    """Raw scenario input could not be converted into a ``ScenarioInput``."""


class SimulationPeriodError(ValueError):
    """Life expectancy does not leave at least one year after retirement."""


class OptimizerUnavailableError(RuntimeError):
    """The pension-split optimizer does not expose the required callables."""


__all__ = [
    "ScenarioValidationError",
    "SimulationPeriodError",
    "OptimizerUnavailableError",
]
