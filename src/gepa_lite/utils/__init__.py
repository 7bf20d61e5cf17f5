"""
Utility modules for gepa-lite.

"""

from .stop_condition import (
    CompositeStopper,
    MaxBudgetStopper,
    MaxIterationsStopper,
    MaxMetricCallsStopper,
    StagnationStopper,
    StopperProtocol,
    build_budget_stopper,
)

__all__ = [
    "CompositeStopper",
    "MaxBudgetStopper",
    "MaxIterationsStopper",
    "MaxMetricCallsStopper",
    "StagnationStopper",
    "StopperProtocol",
    "build_budget_stopper",
]
