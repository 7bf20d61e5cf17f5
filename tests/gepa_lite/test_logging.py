import io
import json
import logging

import pytest

from gepa_lite.core.pareto import build_pareto_front
from gepa_lite.core.state import ArchiveRecord, RunState
from gepa_lite.logging import StdlibLogger, StdOutLogger, Tee, render_iteration_summary
from gepa_lite.logging.utils import format_pareto_table


def test_stdout_logger_filters_below_min_level():
    stream = io.StringIO()
    logger = StdOutLogger(min_level="info", stream=stream)
    logger.log("hidden", level="debug")
    logger.log("Accepted new candidate", iteration=2, val_score=0.75)

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    prefix, payload = lines[0].split(" {", 1)
    assert prefix == "[INFO] Accepted new candidate"
    assert json.loads("{" + payload) == {"iteration": 2, "val_score": 0.75}


def test_stdout_logger_rejects_unknown_level():
    with pytest.raises(ValueError):
        StdOutLogger(min_level="loud")


def test_stdlib_logger_forwards_levels(caplog):
    with caplog.at_level(logging.DEBUG, logger="gepa_lite.test"):
        StdlibLogger("gepa_lite.test").log("careful", level="warning", n=1)
    assert caplog.records[-1].levelno == logging.WARNING
    assert caplog.records[-1].getMessage() == 'careful {"n": 1}'


def test_tee_fans_out():
    a, b = io.StringIO(), io.StringIO()
    Tee(StdOutLogger(stream=a), StdOutLogger(stream=b)).log("hello")
    assert a.getvalue() == b.getvalue() == "[INFO] hello\n"


def _state():
    state = RunState()
    state.add_record(
        ArchiveRecord(candidate={"instruction": "a"}, scores={"correctness": 0.5, "latency": -120.0}, scalar_score=0.5),
        [0.5],
    )
    state.add_record(
        ArchiveRecord(
            candidate={"instruction": "b"}, scores={"correctness": 0.75, "latency": -300.0}, scalar_score=0.75, parent=0
        ),
        [0.75],
    )
    state.total_metric_calls = 42
    state.total_cost_usd = 0.0123
    return state


def test_pareto_table_lists_members():
    state = _state()
    front = build_pareto_front(state.objective_records())
    assert format_pareto_table(state, front) == (
        "#0: correctness=0.5000, latency=-120.00, scalar=0.5000\n"
        "#1: correctness=0.7500, latency=-300.00, scalar=0.7500"
    )


def test_iteration_summary_sections():
    state = _state()
    front = build_pareto_front(state.objective_records())
    text = render_iteration_summary(3, state, front, 12.5, reflection_prompt="PROMPT", reflection_summary="SUMMARY")

    assert "=== Iteration 3 Summary ===" in text
    assert "Hypervolume(2D): 12.5" in text
    assert "Calls: 42  |  Cost USD: 0.0123" in text
    assert "--- Latest Reflection Prompt ---\nPROMPT" in text
    assert "--- Reflection Summary ---\nSUMMARY" in text


def test_iteration_summary_without_hypervolume_or_reflection():
    state = _state()
    text = render_iteration_summary(1, state, [], None)
    assert "Hypervolume(2D): n/a" in text
    assert "Reflection" not in text
