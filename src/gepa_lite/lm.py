# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""LiteLLM-backed language model callables for reflection and summaries."""

from collections.abc import Awaitable, Callable
from typing import Any

from gepa_lite.config import ModelConfig

AsyncLM = Callable[[str], Awaitable[str]]


def _completion_kwargs(model: ModelConfig, prompt: str, extra: dict[str, Any]) -> dict[str, Any]:
    completion_kwargs: dict[str, Any] = {
        "model": model.name,
        "messages": [{"role": "user", "content": prompt}],
    }
    if model.max_tokens is not None:
        completion_kwargs["max_tokens"] = model.max_tokens
    if model.temperature is not None:
        completion_kwargs["temperature"] = model.temperature
    completion_kwargs.update(extra)
    return completion_kwargs


def make_litellm_lm(model: str | ModelConfig, temperature: float | None = 0.7, **kwargs: Any) -> AsyncLM:
    """
    Build an async ``prompt -> text`` callable over ``litellm.acompletion``.

    One completion per call and no retries; extra keyword arguments are passed
    straight through to litellm.
    """
    if isinstance(model, str):
        model = ModelConfig(name=model, temperature=temperature)

    async def lm(prompt: str) -> str:
        from litellm import acompletion

        response = await acompletion(**_completion_kwargs(model, prompt, kwargs))
        return response.choices[0].message.content or ""

    return lm


def resolve_lm(model: Any, temperature: float | None = 0.7) -> Callable[[str], Any] | None:
    """Model names and ModelConfig become litellm callables; callables pass through."""
    if model is None:
        return None
    if isinstance(model, (str, ModelConfig)):
        return make_litellm_lm(model, temperature=temperature)
    if callable(model):
        return model
    raise TypeError(f"Expected a model name, ModelConfig or callable, got {type(model).__name__}")
