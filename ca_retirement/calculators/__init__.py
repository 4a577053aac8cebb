"""Helper package that exposes core retirement calculators.

The `calculators` package contains small, focused modules that each implement
specific pieces of the simulation:

* ``taxes`` – federal and provincial income tax, capital gains inclusion and the
  household tax step.
* ``benefits`` – CPP, OAS with clawback, GIS and other indexed income.
* ``rrif`` – RRIF/LIF minimum rates and provincial LIF maximum factors.
* ``withdrawals`` – covering the cash shortfall from accounts in phase order.
* ``optimizer`` – yearly pension income splitting between spouses.
* ``engine`` – the year-by-year simulation loop and scenario comparisons.
* ``monte_carlo`` – randomized-return trials and outcome statistics.
* ``breakeven`` – comparing two CPP start ages on an after-tax basis.

Each module exposes a few public functions with clear parameters and returns.  See
individual docstrings for details.
"""

from . import taxes, benefits, rrif, withdrawals, optimizer, engine, monte_carlo, breakeven  # noqa: F401

__all__ = ["taxes", "benefits", "rrif", "withdrawals", "optimizer", "engine", "monte_carlo",
           "breakeven"]
