# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

import asyncio
from collections.abc import Sequence
from typing import Any

from gepa_lite.config import GEPAConfig, PersistenceConfig
from gepa_lite.core.engine import GEPAEngine
from gepa_lite.core.persistence import PersistenceProtocol
from gepa_lite.core.result import GEPAResult


def _build_config(
    seed_candidate: dict[str, str],
    trainset: Sequence[Any],
    valset: Sequence[Any] | None,
    run_dir: str | None,
    resume: bool,
    **kwargs: Any,
) -> GEPAConfig:
    if run_dir is not None and kwargs.get("persistence") is None:
        kwargs["persistence"] = PersistenceConfig(dir=run_dir, resume=resume)
    return GEPAConfig(seed_candidate=seed_candidate, trainset=trainset, valset=valset, **kwargs)


async def optimize_async(
    seed_candidate: dict[str, str],
    trainset: Sequence[Any],
    valset: Sequence[Any] | None = None,
    *,
    run_dir: str | None = None,
    resume: bool = False,
    persistence_backend: PersistenceProtocol | None = None,
    **kwargs: Any,
) -> GEPAResult:
    """
    Optimize the text components of ``seed_candidate`` against ``trainset``.

    Keyword arguments are the fields of ``GEPAConfig`` (``adapter`` or
    ``task_lm``, ``reflection_lm``, budgets, strategies, ...). ``run_dir`` is a
    shortcut for file persistence under that directory; pass
    ``persistence_backend`` to use any object implementing the persistence
    protocol instead.

    Returns a ``GEPAResult`` with the best candidate, the final Pareto front,
    run totals and the per-iteration history.
    """
    config = _build_config(seed_candidate, trainset, valset, run_dir, resume, **kwargs)
    engine = GEPAEngine(
        config,
        persistence=persistence_backend,
        resume=resume if persistence_backend is not None else None,
    )
    return await engine.run()


def optimize(
    seed_candidate: dict[str, str],
    trainset: Sequence[Any],
    valset: Sequence[Any] | None = None,
    **kwargs: Any,
) -> GEPAResult:
    """Blocking wrapper around ``optimize_async``; see it for the arguments."""
    return asyncio.run(optimize_async(seed_candidate, trainset, valset, **kwargs))
