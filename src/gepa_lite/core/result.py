# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from dataclasses import dataclass, field
from typing import Any

from gepa_lite.core.adapter import Candidate
from gepa_lite.core.pareto import ParetoPoint, idxmax
from gepa_lite.core.state import HistoryEntry, ProgramIdx, RunState


@dataclass(frozen=True)
class GEPAResult:
    """
    Immutable snapshot of a finished run.

    - best_candidate / best_score / best_idx: the archive record with the highest
      scalar score (first occurrence wins ties)
    - pareto_front: ``{candidate, scores, scalar_score}`` for every non-dominated record
    - iterations: number of iterations that passed the budget gate
    - total_metric_calls / total_cost_usd: run totals, resumed runs included
    - history: one entry per completed proposal, accepted or not
    - hypervolume: 2D hypervolume of the final front, None unless there are
      exactly two objectives

    Convenience:
    - lineage(idx): parent chain from the seed to idx
    - to_dict(): JSON-ready representation
    """

    best_candidate: Candidate
    best_score: float
    pareto_front: list[dict[str, Any]]
    iterations: int
    total_metric_calls: int
    total_cost_usd: float
    history: list[HistoryEntry] = field(default_factory=list)
    hypervolume: float | None = None
    best_idx: int = 0
    parents: list[ProgramIdx | None] = field(default_factory=list)

    @property
    def num_candidates(self) -> int:
        return len(self.parents)

    def lineage(self, idx: int) -> list[int]:
        chain = [idx]
        parent = self.parents[idx]
        while parent is not None:
            chain.append(parent)
            parent = self.parents[parent]
        return list(reversed(chain))

    def to_dict(self) -> dict[str, Any]:
        return dict(
            best_candidate=dict(self.best_candidate),
            best_score=self.best_score,
            best_idx=self.best_idx,
            pareto_front=[dict(member) for member in self.pareto_front],
            iterations=self.iterations,
            total_metric_calls=self.total_metric_calls,
            total_cost_usd=self.total_cost_usd,
            hypervolume=self.hypervolume,
            history=[entry.to_dict() for entry in self.history],
            parents=list(self.parents),
        )

    @staticmethod
    def from_state(
        state: RunState,
        pareto_front: list[ParetoPoint],
        hypervolume: float | None = None,
    ) -> "GEPAResult":
        best_idx = idxmax(state.scalar_scores)
        best = state.archive[best_idx]
        return GEPAResult(
            best_candidate=dict(best.candidate),
            best_score=best.scalar_score,
            pareto_front=[
                {
                    "candidate": dict(state.archive[point.idx].candidate),
                    "scores": dict(state.archive[point.idx].scores),
                    "scalar_score": state.archive[point.idx].scalar_score,
                }
                for point in pareto_front
            ],
            iterations=state.iteration,
            total_metric_calls=state.total_metric_calls,
            total_cost_usd=state.total_cost_usd,
            history=list(state.history),
            hypervolume=hypervolume,
            best_idx=best_idx,
            parents=[record.parent for record in state.archive],
        )
