# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

from gepa_lite.core.adapter import Candidate, maybe_await
from gepa_lite.core.pareto import ParetoPoint
from gepa_lite.core.state import RunState

T = TypeVar("T")


@runtime_checkable
class CandidateSelector(Protocol):
    def select_candidate_idx(self, state: RunState, pareto_front: Sequence[ParetoPoint]) -> int: ...


class ReflectionComponentSelector(Protocol):
    def __call__(
        self,
        state: RunState,
        candidate_idx: int,
        candidate: Candidate,
        iteration: int,
    ) -> list[str]: ...


@runtime_checkable
class BatchSampler(Protocol):
    def next_minibatch_ids(self, dataset_size: int, iteration: int) -> list[int]: ...

    def next_batch(self, data: Sequence[T], iteration: int) -> list[T]: ...

    def state_dict(self) -> dict[str, Any]: ...

    def load_state_dict(self, state: dict[str, Any]) -> None: ...


class LanguageModel(Protocol):
    def __call__(self, prompt: str) -> str | dict[str, str] | Awaitable[str | dict[str, str]]: ...


@dataclass
class Signature:
    prompt_template: ClassVar[str]
    input_keys: ClassVar[list[str]]
    output_keys: ClassVar[list[str]]

    @classmethod
    def prompt_renderer(cls, input_dict: Mapping[str, Any]) -> str:
        raise NotImplementedError

    @classmethod
    def output_extractor(cls, lm_out: str) -> dict[str, str]:
        raise NotImplementedError

    @classmethod
    async def run(cls, lm: LanguageModel, input_dict: Mapping[str, Any]) -> dict[str, str]:
        full_prompt = cls.prompt_renderer(input_dict)
        lm_out = await maybe_await(lm(full_prompt))

        if isinstance(lm_out, str):
            text_out = lm_out.strip()
        elif isinstance(lm_out, dict):
            text_out = lm_out["text"].strip()
        else:
            raise TypeError("The output of the lm call should be str or dict!")

        return cls.output_extractor(text_out)
