# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""
Run configuration for gepa-lite.

Defaults mirror the classic GEPA loop: current-best parent selection, round
robin over components, minibatches of three and a perfect-score skip at 1.0.
``validate`` is called by the engine before any evaluation happens.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from gepa_lite.strategies.candidate_selector import CANDIDATE_SELECTION_STRATEGIES
from gepa_lite.strategies.component_selector import COMPONENT_SELECTORS


@dataclass(slots=True)
class ModelConfig:
    """Configuration for an LLM call."""

    name: str
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass(slots=True)
class PersistenceConfig:
    """Where ``checkpoint.json`` and the archive log live, and how often to checkpoint."""

    dir: str
    checkpoint_every_iterations: int = 1
    archive_file: str = "archive.jsonl"
    resume: bool = False


ModelSpec = str | ModelConfig | Callable[..., Any]


@dataclass(slots=True)
class GEPAConfig:
    seed_candidate: dict[str, str]
    trainset: Sequence[Any]
    valset: Sequence[Any] | None = None

    # Collaborators
    adapter: Any = None
    task_lm: ModelSpec | None = None
    reflection_lm: ModelSpec | None = None

    # Budgets; at least one is required
    max_metric_calls: int | None = None
    max_budget_usd: float | None = None
    max_iterations: int | None = None

    # Strategies
    candidate_selection_strategy: Any = "current_best"
    component_selector: Any = "round_robin"

    # Reflection
    reflection_minibatch_size: int = 3
    tie_epsilon: float = 0.0
    perfect_score: float = 1.0
    skip_perfect_score: bool = True
    reflection_hint: str | None = None

    # Reproducibility and stopping
    seed: int = 0
    early_stopping_trials: int = 5

    # Observability
    verbose: bool = False
    display_progress_bar: bool = False
    logger: Any = None

    persistence: PersistenceConfig | None = None

    @property
    def validation_set(self) -> Sequence[Any]:
        return self.valset if self.valset is not None else self.trainset

    def validate(self) -> None:
        if not self.seed_candidate:
            raise ValueError("seed_candidate must contain at least one component")
        if not self.trainset:
            raise ValueError("trainset must not be empty")
        if self.valset is not None and not self.valset:
            raise ValueError("valset must not be empty when provided")
        if self.adapter is None and self.task_lm is None:
            raise ValueError("Either adapter or task_lm must be provided")
        if self.reflection_lm is None and getattr(self.adapter, "propose_new_texts", None) is None:
            raise ValueError("reflection_lm must be provided when the adapter has no propose_new_texts")
        if self.max_metric_calls is None and self.max_budget_usd is None and self.max_iterations is None:
            raise ValueError("You must set at least one of max_metric_calls, max_budget_usd, or max_iterations")
        if self.reflection_minibatch_size <= 0:
            raise ValueError(f"reflection_minibatch_size must be positive, got {self.reflection_minibatch_size}")
        if self.tie_epsilon < 0:
            raise ValueError(f"tie_epsilon must be non-negative, got {self.tie_epsilon}")
        if self.early_stopping_trials <= 0:
            raise ValueError(f"early_stopping_trials must be positive, got {self.early_stopping_trials}")
        if (
            isinstance(self.candidate_selection_strategy, str)
            and self.candidate_selection_strategy not in CANDIDATE_SELECTION_STRATEGIES
        ):
            raise ValueError(
                f"Unknown candidate selection strategy: {self.candidate_selection_strategy}. "
                f"Supported: {', '.join(CANDIDATE_SELECTION_STRATEGIES)}"
            )
        if isinstance(self.component_selector, str) and self.component_selector not in COMPONENT_SELECTORS:
            raise ValueError(
                f"Unknown component selector: {self.component_selector}. Supported: {', '.join(COMPONENT_SELECTORS)}"
            )
        if self.persistence is not None and self.persistence.checkpoint_every_iterations <= 0:
            raise ValueError(
                "persistence.checkpoint_every_iterations must be positive, "
                f"got {self.persistence.checkpoint_every_iterations}"
            )
