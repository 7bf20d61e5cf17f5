# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""
Stop conditions for optimization runs.

The budget stoppers are consulted at the top of every iteration, before the
iteration counter is committed. Each one receives the run state and the
number of the iteration about to start.
"""

from typing import Protocol, runtime_checkable

from gepa_lite.core.state import RunState


@runtime_checkable
class StopperProtocol(Protocol):
    """
    A stopper is a callable object that returns True when the run should stop.
    ``reason`` is a short human-readable explanation for logs.
    """

    reason: str

    def __call__(self, state: RunState, next_iteration: int) -> bool: ...


class MaxMetricCallsStopper(StopperProtocol):
    # stops once the metric-call budget is used up

    def __init__(self, max_metric_calls: int):
        self.max_metric_calls = max_metric_calls
        self.reason = "Max metric calls reached"

    def __call__(self, state: RunState, next_iteration: int) -> bool:
        return state.total_metric_calls >= self.max_metric_calls


class MaxBudgetStopper(StopperProtocol):
    # stops once the accumulated cost reaches the USD budget

    def __init__(self, max_budget_usd: float):
        self.max_budget_usd = max_budget_usd
        self.reason = "Max budget reached"

    def __call__(self, state: RunState, next_iteration: int) -> bool:
        return state.total_cost_usd >= self.max_budget_usd


class MaxIterationsStopper(StopperProtocol):
    def __init__(self, max_iterations: int):
        self.max_iterations = max_iterations
        self.reason = "Max iterations reached"

    def __call__(self, state: RunState, next_iteration: int) -> bool:
        return next_iteration > self.max_iterations


class StagnationStopper(StopperProtocol):
    # stops after ``max_rejections`` consecutive rejected proposals

    def __init__(self, max_rejections: int = 5):
        self.max_rejections = max_rejections
        self.reason = "Early stopping due to stagnation"

    def __call__(self, state: RunState, next_iteration: int) -> bool:
        return state.stagnation >= self.max_rejections


class CompositeStopper(StopperProtocol):
    """Combines stoppers; ``triggered`` is the first one that fired in ``any`` mode."""

    def __init__(self, *stoppers: StopperProtocol, mode: str = "any"):
        if mode not in ("any", "all"):
            raise ValueError(f"Unknown mode: {mode}")
        self.stoppers = stoppers
        self.mode = mode
        self.triggered: StopperProtocol | None = None
        self.reason = "Composite stop condition met"

    def __call__(self, state: RunState, next_iteration: int) -> bool:
        if self.mode == "all":
            return all(stopper(state, next_iteration) for stopper in self.stoppers)
        for stopper in self.stoppers:
            if stopper(state, next_iteration):
                self.triggered = stopper
                self.reason = stopper.reason
                return True
        return False


def build_budget_stopper(
    max_metric_calls: int | None = None,
    max_budget_usd: float | None = None,
    max_iterations: int | None = None,
) -> CompositeStopper:
    """Budget stoppers in check order: metric calls, then cost, then iterations."""
    stoppers: list[StopperProtocol] = []
    if max_metric_calls is not None:
        stoppers.append(MaxMetricCallsStopper(max_metric_calls))
    if max_budget_usd is not None:
        stoppers.append(MaxBudgetStopper(max_budget_usd))
    if max_iterations is not None:
        stoppers.append(MaxIterationsStopper(max_iterations))
    if not stoppers:
        raise ValueError("You must set at least one of max_metric_calls, max_budget_usd, or max_iterations")
    return CompositeStopper(*stoppers)
