# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from collections.abc import Sequence

from gepa_lite.core.pareto import (
    ParetoPoint,
    idxmax,
    instance_fronts,
    select_program_candidate_from_instance_fronts,
)
from gepa_lite.core.rng import Xorshift32
from gepa_lite.core.state import RunState
from gepa_lite.proposer.base import CandidateSelector


class ParetoCandidateSelector(CandidateSelector):
    """Samples parents in proportion to how many validation instances they win."""

    def __init__(self, rng: Xorshift32 | None):
        if rng is None:
            self.rng = Xorshift32(0)
        else:
            self.rng = rng

    def select_candidate_idx(self, state: RunState, pareto_front: Sequence[ParetoPoint]) -> int:
        assert len(state.instance_scores) == len(state.archive)
        matrix = state.instance_scores
        if not matrix or not matrix[0]:
            return idxmax(state.scalar_scores)
        return select_program_candidate_from_instance_fronts(
            instance_fronts(matrix),
            state.scalar_scores,
            self.rng,
        )


class CurrentBestCandidateSelector(CandidateSelector):
    def select_candidate_idx(self, state: RunState, pareto_front: Sequence[ParetoPoint]) -> int:
        return idxmax(state.scalar_scores)


CANDIDATE_SELECTION_STRATEGIES = ("pareto", "current_best")


def resolve_candidate_selector(strategy: str | CandidateSelector, rng: Xorshift32) -> CandidateSelector:
    if not isinstance(strategy, str):
        return strategy
    if strategy == "pareto":
        return ParetoCandidateSelector(rng=rng)
    if strategy == "current_best":
        return CurrentBestCandidateSelector()
    raise ValueError(
        f"Unknown candidate selection strategy: {strategy}. "
        f"Supported: {', '.join(CANDIDATE_SELECTION_STRATEGIES)}"
    )
