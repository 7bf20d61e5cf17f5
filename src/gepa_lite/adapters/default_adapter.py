# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""
Default adapter for single-system-prompt tasks.

Data instances carry an ``input`` (string or JSON-serializable value), an
optional ``expected_output`` and an optional ``scorer``. The candidate's
system prompt is read from the ``system``, ``systemPrompt`` or
``instruction`` component. LLM calls go through LiteLLM so any provider it
supports can be used as the task model.
"""

import asyncio
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from gepa_lite.config import ModelConfig
from gepa_lite.core.adapter import Candidate, EvaluationBatch

SYSTEM_PROMPT_KEYS = ("system", "systemPrompt", "instruction")
FAILURE_THRESHOLD = 0.9
NUM_SUCCESS_EXAMPLES = 3

CostEstimator = Callable[..., float]


@dataclass(slots=True)
class DefaultDataInst:
    """Minimal data instance for prompt-based tasks."""

    input: Any
    expected_output: Any = None
    scorer: Callable[[Any, Any], float] | None = None


@dataclass(slots=True)
class DefaultTrajectory:
    input: Any
    system_prompt: str
    user_prompt: str
    output: Any
    score: float
    expected_output: Any = None
    latency_ms: float = 0.0
    error: str | None = None


def _as_inst(value: Any) -> DefaultDataInst:
    if isinstance(value, DefaultDataInst):
        return value
    if isinstance(value, dict):
        return DefaultDataInst(
            input=value["input"],
            expected_output=value.get("expected_output"),
            scorer=value.get("scorer"),
        )
    return DefaultDataInst(input=value)


def _to_user_prompt(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _default_scorer(prediction: Any, expected: Any) -> float:
    if isinstance(prediction, (dict, list)) and isinstance(expected, (dict, list)):
        return 1.0 if json.dumps(prediction, sort_keys=True) == json.dumps(expected, sort_keys=True) else 0.0
    return 1.0 if prediction == expected else 0.0


class DefaultAdapter:
    """
    Evaluates a candidate system prompt against a task model.

    Per-instance calls run concurrently, bounded by ``max_concurrency``, and
    results keep the batch order. A failing instance scores 0.0 and carries
    its error in the trace; it never fails the batch.
    """

    propose_new_texts = None

    def __init__(
        self,
        model: str | ModelConfig,
        temperature: float | None = 0.7,
        max_concurrency: int = 10,
        cost_estimator: CostEstimator | None = None,
        **completion_kwargs: Any,
    ):
        self.task_model = model if isinstance(model, ModelConfig) else ModelConfig(name=model, temperature=temperature)
        self.max_concurrency = max(1, max_concurrency)
        self.cost_estimator = cost_estimator
        self.completion_kwargs = completion_kwargs

    def _estimate_cost(self, response: Any, system_prompt: str, user_prompt: str, output: str) -> float:
        try:
            if self.cost_estimator is not None:
                return float(
                    self.cost_estimator(
                        model=self.task_model.name,
                        input=f"{system_prompt}\n{user_prompt}",
                        output=output,
                        result=response,
                    )
                )
            from litellm import completion_cost

            return float(completion_cost(completion_response=response) or 0.0)
        except Exception:
            # unknown model pricing is not an evaluation failure
            return 0.0

    async def _call_task_lm(self, system_prompt: str, user_prompt: str) -> Any:
        from litellm import acompletion

        completion_kwargs: dict[str, Any] = {
            "model": self.task_model.name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if self.task_model.max_tokens is not None:
            completion_kwargs["max_tokens"] = self.task_model.max_tokens
        if self.task_model.temperature is not None:
            completion_kwargs["temperature"] = self.task_model.temperature
        completion_kwargs.update(self.completion_kwargs)
        return await acompletion(**completion_kwargs)

    async def _run_one(
        self,
        raw: DefaultDataInst | dict[str, Any],
        system_prompt: str,
        semaphore: asyncio.Semaphore,
    ) -> tuple[Any, float, dict[str, float], DefaultTrajectory]:
        inst: DefaultDataInst | None = None
        user_prompt = ""
        async with semaphore:
            t0 = time.perf_counter()
            try:
                inst = _as_inst(raw)
                user_prompt = _to_user_prompt(inst.input)
                response = await self._call_task_lm(system_prompt, user_prompt)
                output = response.choices[0].message.content or ""
                latency_ms = (time.perf_counter() - t0) * 1000
                cost_usd = self._estimate_cost(response, system_prompt, user_prompt, output)

                if inst.scorer is not None:
                    score = float(inst.scorer(output, inst.expected_output))
                elif inst.expected_output is not None:
                    score = _default_scorer(output, inst.expected_output)
                else:
                    score = 1.0
            except Exception as e:
                latency_ms = (time.perf_counter() - t0) * 1000
                raw_input = inst.input if inst is not None else raw
                trace = DefaultTrajectory(
                    input=raw_input,
                    system_prompt=system_prompt,
                    user_prompt=user_prompt or str(raw_input),
                    output=None,
                    score=0.0,
                    expected_output=inst.expected_output if inst is not None else None,
                    latency_ms=latency_ms,
                    error=str(e),
                )
                return None, 0.0, {"latency_ms": latency_ms, "cost_usd": 0.0}, trace

        trace = DefaultTrajectory(
            input=inst.input,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            output=output,
            score=score,
            expected_output=inst.expected_output,
            latency_ms=latency_ms,
        )
        return output, score, {"latency_ms": latency_ms, "cost_usd": cost_usd}, trace

    async def evaluate(
        self,
        batch: list[DefaultDataInst | dict[str, Any]],
        candidate: Candidate,
        capture_traces: bool = False,
    ) -> EvaluationBatch[DefaultTrajectory, Any]:
        system_prompt = next((candidate[k] for k in SYSTEM_PROMPT_KEYS if candidate.get(k)), "")
        semaphore = asyncio.Semaphore(self.max_concurrency)
        results = await asyncio.gather(*(self._run_one(inst, system_prompt, semaphore) for inst in batch))

        return EvaluationBatch(
            outputs=[r[0] for r in results],
            scores=[r[1] for r in results],
            metrics=[r[2] for r in results],
            trajectories=[r[3] for r in results] if capture_traces else None,
        )

    def make_reflective_dataset(
        self,
        candidate: Candidate,
        eval_batch: EvaluationBatch[DefaultTrajectory, Any],
        components_to_update: list[str],
    ) -> dict[str, list[dict[str, Any]]]:
        ret_d: dict[str, list[dict[str, Any]]] = {}
        trajectories = eval_batch.trajectories
        if not trajectories:
            return ret_d

        for comp in components_to_update:
            items: list[dict[str, Any]] = []
            for trace, score in zip(trajectories, eval_batch.scores, strict=False):
                if score < FAILURE_THRESHOLD:
                    items.append(
                        {
                            "Inputs": {"userMessage": trace.user_prompt, "systemPrompt": trace.system_prompt},
                            "Generated Outputs": trace.output or trace.error or "No output",
                            "Feedback": self.generate_feedback(trace, score),
                        }
                    )

            # no failures: show a few successes for context
            if not items:
                for trace, score in list(zip(trajectories, eval_batch.scores, strict=False))[:NUM_SUCCESS_EXAMPLES]:
                    items.append(
                        {
                            "Inputs": {"userMessage": trace.user_prompt, "systemPrompt": trace.system_prompt},
                            "Generated Outputs": trace.output,
                            "Feedback": f"Successful execution with score {score}",
                        }
                    )
            ret_d[comp] = items
        return ret_d

    @staticmethod
    def generate_feedback(trace: DefaultTrajectory, score: float) -> str:
        parts: list[str] = []
        if trace.error:
            parts.append(f"Error: {trace.error}")
        if trace.expected_output is not None:
            parts.append(f"Expected: {json.dumps(trace.expected_output, default=str)}")
            if trace.output is not None:
                parts.append(f"Got: {json.dumps(trace.output, default=str)}")
        parts.append(f"Score: {score}")
        if score == 0 and not trace.error:
            parts.append("The output did not match the expected result.")
        return " | ".join(parts)
