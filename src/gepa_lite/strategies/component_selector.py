# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from gepa_lite.core.adapter import Candidate
from gepa_lite.core.state import RunState
from gepa_lite.proposer.base import ReflectionComponentSelector


class RoundRobinReflectionComponentSelector(ReflectionComponentSelector):
    def __call__(
        self,
        state: RunState,
        candidate_idx: int,
        candidate: Candidate,
        iteration: int,
    ) -> list[str]:
        names = list(candidate.keys())
        return [names[iteration % len(names)]]


class AllReflectionComponentSelector(ReflectionComponentSelector):
    def __call__(
        self,
        state: RunState,
        candidate_idx: int,
        candidate: Candidate,
        iteration: int,
    ) -> list[str]:
        return list(candidate.keys())


COMPONENT_SELECTORS: dict[str, type[ReflectionComponentSelector]] = {
    "round_robin": RoundRobinReflectionComponentSelector,
    "all": AllReflectionComponentSelector,
}


def resolve_component_selector(
    selector: str | ReflectionComponentSelector,
) -> ReflectionComponentSelector:
    if not isinstance(selector, str):
        return selector
    try:
        return COMPONENT_SELECTORS[selector]()
    except KeyError:
        raise ValueError(
            f"Unknown component selector: {selector}. Supported: {', '.join(COMPONENT_SELECTORS)}"
        ) from None
