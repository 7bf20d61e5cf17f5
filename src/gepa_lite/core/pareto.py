# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""Pareto dominance, front construction and 2D hypervolume.

All objectives are maximized. Score vectors may carry different key sets;
comparisons run over the union of keys and treat a missing key as 0.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

ObjectiveScores = Mapping[str, float]


class RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass
class ParetoPoint:
    idx: int
    scores: dict[str, float]
    dominated: list[int] = field(default_factory=list)


def dominance(a: ObjectiveScores, b: ObjectiveScores, epsilon: float = 0.0) -> int:
    """Return 1 if ``a`` dominates ``b``, -1 if ``b`` dominates ``a``, else 0."""
    a_better = False
    b_better = False
    for key in set(a) | set(b):
        a_val = a.get(key, 0.0)
        b_val = b.get(key, 0.0)
        if a_val > b_val + epsilon:
            a_better = True
        elif b_val > a_val + epsilon:
            b_better = True
    if a_better and not b_better:
        return 1
    if b_better and not a_better:
        return -1
    return 0


def build_pareto_front(
    records: Iterable[tuple[int, ObjectiveScores]],
    epsilon: float = 0.0,
) -> list[ParetoPoint]:
    """
    Compute the non-dominated subset of ``records`` from scratch.

    ``records`` is an ordered sequence of ``(index, scores)`` pairs. Survivors
    are returned in insertion order, and each point lists the indices it
    displaced from the running front when it was inserted.
    """
    front: list[ParetoPoint] = []
    for idx, scores in records:
        displaced: list[int] = []
        is_dominated = False
        for pos, member in enumerate(front):
            relation = dominance(scores, member.scores, epsilon)
            if relation == -1:
                is_dominated = True
                break
            if relation == 1:
                displaced.append(pos)
        if is_dominated:
            continue
        dominated_ids = [front[pos].idx for pos in displaced]
        front = [member for pos, member in enumerate(front) if pos not in displaced]
        front.append(ParetoPoint(idx=idx, scores=dict(scores), dominated=dominated_ids))
    return front


def hypervolume_2d(
    points: Sequence[ObjectiveScores],
    reference_point: ObjectiveScores | None = None,
) -> float | None:
    """
    Area dominated by ``points`` relative to a reference corner.

    Only defined when every point has exactly two objectives; returns None
    otherwise. The objective order is taken from the first point. Without an
    explicit ``reference_point`` the corner is ``min - 1`` on each objective.
    """
    if not points:
        return 0.0
    if any(len(point) != 2 for point in points):
        return None

    obj1, obj2 = list(points[0].keys())
    if reference_point is not None and obj1 in reference_point:
        ref1 = reference_point[obj1]
    else:
        ref1 = min(point.get(obj1, 0.0) for point in points) - 1
    if reference_point is not None and obj2 in reference_point:
        ref2 = reference_point[obj2]
    else:
        ref2 = min(point.get(obj2, 0.0) for point in points) - 1

    ordered = sorted(points, key=lambda point: point.get(obj1, 0.0), reverse=True)
    volume = 0.0
    prev_y = ref2
    for point in ordered:
        x = point.get(obj1, 0.0)
        y = point.get(obj2, 0.0)
        if x > ref1 and y > prev_y:
            volume += (x - ref1) * (y - prev_y)
            prev_y = y
    return volume


def average(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def avg_vec(vectors: Sequence[ObjectiveScores]) -> dict[str, float]:
    if not vectors:
        return {}
    keys: list[str] = []
    for vec in vectors:
        for key in vec:
            if key not in keys:
                keys.append(key)
    return {key: average([vec.get(key, 0.0) for vec in vectors]) for key in keys}


def idxmax(values: Sequence[float]) -> int:
    """Index of the maximum value; the first occurrence wins ties."""
    if not values:
        raise ValueError("idxmax() arg is an empty sequence")
    best_idx = 0
    for i in range(1, len(values)):
        if values[i] > values[best_idx]:
            best_idx = i
    return best_idx


def instance_fronts(instance_scores: Sequence[Sequence[float]]) -> list[set[int]]:
    """For each instance position, the set of programs tied for the best score."""
    if not instance_scores:
        return []
    n_instances = len(instance_scores[0])
    fronts: list[set[int]] = []
    for i in range(n_instances):
        best = float("-inf")
        front: set[int] = set()
        for prog_idx, scores in enumerate(instance_scores):
            value = scores[i] if i < len(scores) else 0.0
            if value > best:
                best = value
                front = {prog_idx}
            elif value == best:
                front.add(prog_idx)
        fronts.append(front)
    return fronts


def front_membership_weights(fronts: Sequence[set[int]], num_programs: int) -> list[int]:
    weights = [0] * num_programs
    for front in fronts:
        for prog_idx in front:
            weights[prog_idx] += 1
    return weights


def select_program_candidate_from_instance_fronts(
    fronts: Sequence[set[int]],
    per_program_scores: Sequence[float],
    rng: RandomSource,
) -> int:
    """
    Sample a program proportionally to the number of instance fronts it is on.

    Programs that are on no front carry zero weight and are never returned.
    Falls back to the best aggregate score when every weight is zero.
    """
    weights = front_membership_weights(fronts, len(per_program_scores))
    total = sum(weights)
    if total == 0:
        return idxmax(per_program_scores)

    r = rng.random() * total
    last = 0
    for prog_idx, weight in enumerate(weights):
        if weight <= 0:
            continue
        last = prog_idx
        r -= weight
        if r <= 0:
            return prog_idx
    return last
