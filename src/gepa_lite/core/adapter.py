# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

import inspect
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

# Generic type parameters
DataInst = TypeVar("DataInst")
Trajectory = TypeVar("Trajectory")
RolloutOutput = TypeVar("RolloutOutput")

Candidate = dict[str, str]
ReflectiveDataset = Mapping[str, Sequence[Mapping[str, Any]]]


@dataclass
class EvaluationBatch(Generic[Trajectory, RolloutOutput]):
    """
    Container for the result of evaluating a candidate on a batch of data.

    - outputs: raw per-example outputs, in batch order
    - scores: per-example primary objective (higher is better)
    - metrics: optional per-example side metrics; ``latency_ms`` and
      ``cost_usd`` are read by the engine
    - trajectories: per-example traces, only when ``capture_traces=True``
    """

    outputs: list[RolloutOutput]
    scores: list[float]
    metrics: list[dict[str, float]] | None = None
    trajectories: list[Trajectory] | None = None

    def total_cost(self) -> float:
        if not self.metrics:
            return 0.0
        return sum(float(m.get("cost_usd", 0.0) or 0.0) for m in self.metrics)

    def mean_latency(self) -> float:
        if not self.metrics:
            return 0.0
        latencies = [float(m.get("latency_ms", 0.0) or 0.0) for m in self.metrics]
        return sum(latencies) / len(latencies)


class ProposalFn(Protocol):
    def __call__(
        self,
        candidate: Candidate,
        reflective_dataset: ReflectiveDataset,
        components_to_update: list[str],
    ) -> Candidate | Awaitable[Candidate]: ...


class GEPAAdapter(Protocol[DataInst, Trajectory, RolloutOutput]):
    """
    Integration point between the optimizer and the system being optimized.

    ``evaluate`` runs the candidate on every example of ``batch`` and must
    return one score per example, in order, even if individual examples fail;
    failures are scored (typically 0.0) instead of raised.

    ``make_reflective_dataset`` turns a traced evaluation into feedback
    examples for each component in ``components_to_update``.

    ``propose_new_texts`` is optional. When set, it replaces the default
    per-component reflection LM loop.
    """

    propose_new_texts: ProposalFn | None

    def evaluate(
        self,
        batch: list[DataInst],
        candidate: Candidate,
        capture_traces: bool = False,
    ) -> Awaitable[EvaluationBatch[Trajectory, RolloutOutput]] | EvaluationBatch[Trajectory, RolloutOutput]: ...

    def make_reflective_dataset(
        self,
        candidate: Candidate,
        eval_batch: EvaluationBatch[Trajectory, RolloutOutput],
        components_to_update: list[str],
    ) -> dict[str, list[dict[str, Any]]]: ...


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable so sync and async collaborators mix freely."""
    if inspect.isawaitable(value):
        return await value
    return value
