# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from collections.abc import Sequence

from gepa_lite.core.pareto import ParetoPoint
from gepa_lite.core.state import RunState


def _fmt(value: float | None, digits: int) -> str:
    return "n/a" if value is None else f"{value:.{digits}f}"


def format_pareto_table(state: RunState, pareto_front: Sequence[ParetoPoint]) -> str:
    lines = []
    for point in pareto_front:
        record = state.archive[point.idx]
        corr = _fmt(record.scores.get("correctness"), 4)
        lat = _fmt(record.scores.get("latency"), 2)
        lines.append(f"#{point.idx}: correctness={corr}, latency={lat}, scalar={record.scalar_score:.4f}")
    return "\n".join(lines)


def render_iteration_summary(
    iteration: int,
    state: RunState,
    pareto_front: Sequence[ParetoPoint],
    hypervolume: float | None,
    reflection_prompt: str | None = None,
    reflection_summary: str | None = None,
) -> str:
    parts = [
        f"\n=== Iteration {iteration} Summary ===",
        f"Hypervolume(2D): {hypervolume if hypervolume is not None else 'n/a'}",
        f"Calls: {state.total_metric_calls}  |  Cost USD: {state.total_cost_usd:.4f}",
        "--- Pareto Front ---",
        format_pareto_table(state, pareto_front),
    ]
    if reflection_prompt:
        parts.append(f"--- Latest Reflection Prompt ---\n{reflection_prompt}")
    if reflection_summary:
        parts.append(f"--- Reflection Summary ---\n{reflection_summary}")
    return "\n".join(parts) + "\n"


def log_iteration_summary(
    logger,
    iteration: int,
    state: RunState,
    pareto_front: Sequence[ParetoPoint],
    hypervolume: float | None,
    reflection_prompt: str | None = None,
    reflection_summary: str | None = None,
) -> None:
    logger.log(
        render_iteration_summary(
            iteration,
            state,
            pareto_front,
            hypervolume,
            reflection_prompt=reflection_prompt,
            reflection_summary=reflection_summary,
        )
    )
