import json
from unittest.mock import MagicMock

import pytest

import gepa_lite
from gepa_lite import FilePersistence, optimize, optimize_async

SEED = {"instruction": "Answer the question"}


def test_optimize_writes_run_dir(tmp_path, adapter, trainset, keyword_lm, quiet_logger):
    result = optimize(
        SEED,
        trainset,
        adapter=adapter,
        reflection_lm=keyword_lm,
        max_iterations=4,
        logger=quiet_logger,
        run_dir=str(tmp_path),
    )

    assert isinstance(result, gepa_lite.GEPAResult)
    assert result.iterations == 4
    assert result.best_score == max(entry["scalar_score"] for entry in result.pareto_front)
    assert result.best_score > 0.0

    checkpoint = json.loads((tmp_path / "checkpoint.json").read_text())
    assert checkpoint["iteration"] == 4
    assert checkpoint["total_metric_calls"] == result.total_metric_calls

    events = [e["event"] for e in FilePersistence(tmp_path).read_archive_events()]
    assert events[0] == "start"
    assert events[-1] == "finish"


def test_optimize_uses_separate_valset(adapter, trainset, keyword_lm, quiet_logger):
    valset = trainset[:2]
    result = optimize(
        SEED, trainset, valset, adapter=adapter, reflection_lm=keyword_lm, max_iterations=1, logger=quiet_logger
    )
    # seed evaluated on the two validation instances only
    assert adapter.calls[0] == (2, False)
    assert result.iterations == 1


@pytest.mark.asyncio
async def test_optimize_async_with_custom_persistence_backend(adapter, trainset, keyword_lm, quiet_logger):
    backend = MagicMock()
    backend.load_checkpoint.return_value = None
    result = await optimize_async(
        SEED,
        trainset,
        adapter=adapter,
        reflection_lm=keyword_lm,
        max_iterations=2,
        logger=quiet_logger,
        persistence_backend=backend,
        resume=True,
    )

    backend.load_checkpoint.assert_called_once()
    assert backend.save_checkpoint.called
    assert result.iterations == 2


def test_optimize_rejects_missing_budget(adapter, trainset, keyword_lm):
    with pytest.raises(ValueError):
        optimize(SEED, trainset, adapter=adapter, reflection_lm=keyword_lm)
    assert adapter.calls == []
