from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional

import numpy as np

from .. import config
from ..errors import OptimizerUnavailableError
from ..models import ScenarioInput, Settings
from . import optimizer as default_optimizer
from .engine import SplitStrategy, iter_years, simulation_years
from .optimizer import optimal_split_strategy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class BoxMullerSampler:
    """Standard normal draws via the Box-Muller transform.

    Uniform variates come from a numpy ``Generator``; pass ``seed`` (or a
    generator) to make a run reproducible.  Any object with a
    ``standard_normal()`` method can stand in for this class.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def _uniform(self) -> float:
        u = 0.0
        while u == 0.0:
            u = self.rng.random()
        return u

    def standard_normal(self) -> float:
        u, v = self._uniform(), self._uniform()
        return float(np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v))


def generate_random_returns(mean: float, stdev: float, num_years: int, sampler) -> np.ndarray:
    return np.array([sampler.standard_normal() * stdev + mean for _ in range(num_years)])


def random_return_paths(
    means: Dict[str, float],
    stdevs: Dict[str, float],
    num_years: int,
    sampler,
) -> Dict[str, np.ndarray]:
    """One path of annual returns per account type for a whole trial."""
    return {
        acct: generate_random_returns(
            means.get(acct, 0.0), stdevs.get(acct, 0.0), num_years, sampler
        )
        for acct in config.ACCOUNT_TYPES
    }


def run_trial(
    inputs: ScenarioInput,
    settings: Settings,
    paths: Dict[str, np.ndarray],
    split_strategy: Optional[SplitStrategy] = None,
) -> float:
    """Final household assets for one trial, or 0 once assets run out."""

    def _returns(index: int) -> Dict[str, float]:
        return {acct: float(path[index]) for acct, path in paths.items()}

    final = 0.0
    for record in iter_years(inputs.scenario, settings, _returns, split_strategy):
        final = record.total_closing
        if final <= 0 and record.shortfall > 0:
            return 0.0
    return final


def summarize(final_values: List[float]) -> Dict[str, float]:
    """Success rate and percentiles of the final-asset distribution."""
    n = len(final_values)
    ordered = np.sort(np.asarray(final_values, dtype=float))
    depleted = int(np.sum(ordered <= 0))

    def _percentile(p: float) -> float:
        index = int(np.floor(p * n))
        return float(ordered[index]) if index < n else 0.0

    return {
        "num_runs": n,
        "success_rate": 1.0 - depleted / n,
        "median": _percentile(0.50),
        "p10": _percentile(0.10),
        "p90": _percentile(0.90),
    }


async def _run_trials(
    inputs: ScenarioInput,
    settings: Optional[Settings],
    stdevs: Optional[Dict[str, float]],
    num_runs: int,
    progress_callback: Optional[ProgressCallback],
    sampler,
    seed: Optional[int],
    split_strategy: Optional[SplitStrategy],
) -> Dict[str, float]:
    settings = settings or inputs.settings()
    num_years = simulation_years(inputs.scenario, settings)
    if num_runs <= 0:
        raise ValueError("num_runs must be positive")
    sampler = sampler if sampler is not None else BoxMullerSampler(seed=seed)
    stdevs = stdevs or {}
    means = inputs.scenario.returns
    interval = min(config.MAX_PROGRESS_INTERVAL, max(1, num_runs // 100))
    logger.info("Starting Monte Carlo: %s runs, %s years per run", num_runs, num_years)

    final_values: List[float] = []
    for i in range(num_runs):
        paths = random_return_paths(means, stdevs, num_years, sampler)
        final_values.append(run_trial(inputs, settings, paths, split_strategy))
        if i % interval == 0 or i == num_runs - 1:
            if progress_callback is not None:
                progress_callback((i + 1) / num_runs)
            await asyncio.sleep(0)
    return summarize(final_values)


async def run_monte_carlo_simulation(
    inputs: ScenarioInput,
    settings: Optional[Settings],
    stdevs: Optional[Dict[str, float]],
    num_runs: int,
    progress_callback: Optional[ProgressCallback] = None,
    sampler=None,
    seed: Optional[int] = None,
) -> Dict[str, float]:
    """Run ``num_runs`` trials with normally distributed annual returns.

    Parameters
    ----------
    inputs : ScenarioInput
        Scenario whose ``returns`` are used as the mean of each account.
    settings : Settings, optional
        Defaults to ``inputs.settings()``.
    stdevs : dict, optional
        Standard deviation of annual return per account type (default 0).
    num_runs : int
        Number of trials.
    progress_callback : callable, optional
        Called with the completed fraction at most every 50 trials.
    sampler : object, optional
        Source of standard normal draws; defaults to ``BoxMullerSampler``.
    seed : int, optional
        Seed for the default sampler.

    Returns
    -------
    dict
        ``num_runs``, ``success_rate``, ``median``, ``p10`` and ``p90``.
    """
    return await _run_trials(
        inputs, settings, stdevs, num_runs, progress_callback, sampler, seed, None
    )


async def run_optimized_monte_carlo_simulation(
    inputs: ScenarioInput,
    settings: Optional[Settings],
    stdevs: Optional[Dict[str, float]],
    num_runs: int,
    progress_callback: Optional[ProgressCallback] = None,
    sampler=None,
    seed: Optional[int] = None,
    optimizer=None,
) -> Dict[str, float]:
    """Same as ``run_monte_carlo_simulation`` with yearly pension splitting.

    Uses a coarse split grid to keep trials fast.  Raises
    ``OptimizerUnavailableError`` before any trial if ``optimizer`` lacks
    ``identify_eligible_pension_income`` or ``calculate_optimal_split``.
    """
    optimizer = optimizer if optimizer is not None else default_optimizer
    for name in ("identify_eligible_pension_income", "calculate_optimal_split"):
        if not callable(getattr(optimizer, name, None)):
            raise OptimizerUnavailableError(f"Optimizer function {name} is not available")
    strategy = optimal_split_strategy(config.OPTIMIZER_STEPS_MONTE_CARLO, optimizer)
    return await _run_trials(
        inputs, settings, stdevs, num_runs, progress_callback, sampler, seed, strategy
    )


__all__ = [
    "BoxMullerSampler",
    "generate_random_returns",
    "random_return_paths",
    "run_trial",
    "summarize",
    "run_monte_carlo_simulation",
    "run_optimized_monte_carlo_simulation",
]
