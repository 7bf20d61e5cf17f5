import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from gepa_lite.adapters.default_adapter import DefaultAdapter, DefaultDataInst, DefaultTrajectory
from gepa_lite.config import ModelConfig
from gepa_lite.core.adapter import EvaluationBatch


def _response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


async def _echo_upper(**kwargs):
    user = kwargs["messages"][1]["content"]
    if user == "boom":
        raise RuntimeError("rate limited")
    return _response(user.upper())


@pytest.fixture
def mock_acompletion():
    with patch("litellm.acompletion", new=AsyncMock(side_effect=_echo_upper)) as mock:
        yield mock


@pytest.mark.asyncio
async def test_evaluate_preserves_order_and_isolates_failures(mock_acompletion):
    adapter = DefaultAdapter("openai/gpt-4o-mini", cost_estimator=lambda **kw: 0.002)
    batch = [
        {"input": "a", "expected_output": "A"},
        DefaultDataInst(input="boom", expected_output="BOOM"),
        {"input": "c", "expected_output": "x"},
    ]
    result = await adapter.evaluate(batch, {"system": "Shout"}, capture_traces=True)

    assert result.outputs == ["A", None, "C"]
    assert result.scores == [1.0, 0.0, 0.0]
    assert [m["cost_usd"] for m in result.metrics] == [0.002, 0.0, 0.002]
    assert all(m["latency_ms"] >= 0 for m in result.metrics)
    assert result.trajectories[1].error == "rate limited"
    assert result.trajectories[0].error is None
    assert result.total_cost() == pytest.approx(0.004)


@pytest.mark.asyncio
async def test_malformed_instances_score_zero_without_failing_the_batch(mock_acompletion):
    adapter = DefaultAdapter("openai/gpt-4o-mini", cost_estimator=lambda **kw: 0.0)
    batch = [{"input": "fine", "expected_output": "FINE"}, {"input": {1, 2}}, {"no_input": 1}]
    result = await adapter.evaluate(batch, {"system": "s"}, capture_traces=True)

    assert result.scores == [1.0, 0.0, 0.0]
    assert result.outputs == ["FINE", None, None]
    assert "not JSON serializable" in result.trajectories[1].error
    assert result.trajectories[1].input == {1, 2}
    assert result.trajectories[2].error == "'input'"
    assert result.trajectories[2].input == {"no_input": 1}
    assert mock_acompletion.await_count == 1


@pytest.mark.asyncio
async def test_evaluate_without_traces(mock_acompletion):
    adapter = DefaultAdapter("openai/gpt-4o-mini", cost_estimator=lambda **kw: 0.0)
    result = await adapter.evaluate(["hi"], {"instruction": "Be nice"})
    assert result.trajectories is None
    # no expected output and no scorer counts as success
    assert result.scores == [1.0]


@pytest.mark.asyncio
async def test_system_prompt_key_resolution_and_model_settings(mock_acompletion):
    adapter = DefaultAdapter(
        ModelConfig(name="anthropic/claude-3-haiku", temperature=0.1, max_tokens=64),
        cost_estimator=lambda **kw: 0.0,
    )
    await adapter.evaluate([{"input": {"q": 1}}], {"systemPrompt": "Answer briefly"})

    kwargs = mock_acompletion.await_args.kwargs
    assert kwargs["model"] == "anthropic/claude-3-haiku"
    assert kwargs["temperature"] == 0.1
    assert kwargs["max_tokens"] == 64
    assert kwargs["messages"][0] == {"role": "system", "content": "Answer briefly"}
    assert kwargs["messages"][1] == {"role": "user", "content": '{"q": 1}'}


@pytest.mark.asyncio
async def test_custom_scorer_and_structured_expected_output(mock_acompletion):
    adapter = DefaultAdapter("openai/gpt-4o-mini", cost_estimator=lambda **kw: 0.0)
    batch = [
        {"input": "abc", "expected_output": "ABC", "scorer": lambda out, exp: 0.5 if out == exp else 0.1},
        {"input": "abc", "expected_output": {"k": 1}},
    ]
    result = await adapter.evaluate(batch, {"system": "s"})
    assert result.scores == [0.5, 0.0]


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    in_flight = 0
    peak = 0

    async def slow(**kwargs):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return _response("ok")

    adapter = DefaultAdapter("openai/gpt-4o-mini", max_concurrency=2, cost_estimator=lambda **kw: 0.0)
    with patch("litellm.acompletion", new=AsyncMock(side_effect=slow)):
        result = await adapter.evaluate([str(i) for i in range(6)], {"system": "s"})

    assert len(result.scores) == 6
    assert peak <= 2


def _trace(user, output, score, expected=None, error=None):
    return DefaultTrajectory(
        input=user,
        system_prompt="sys",
        user_prompt=user,
        output=output,
        score=score,
        expected_output=expected,
        error=error,
    )


def test_reflective_dataset_keeps_only_failures():
    adapter = DefaultAdapter("openai/gpt-4o-mini")
    traces = [
        _trace("q1", "A", 1.0, expected="A"),
        _trace("q2", "B", 0.0, expected="C"),
        _trace("q3", None, 0.0, expected="D", error="timeout"),
    ]
    eval_batch = EvaluationBatch(
        outputs=["A", "B", None], scores=[1.0, 0.0, 0.0], metrics=[{}, {}, {}], trajectories=traces
    )
    dataset = adapter.make_reflective_dataset({"system": "sys"}, eval_batch, ["system"])

    items = dataset["system"]
    assert [item["Inputs"]["userMessage"] for item in items] == ["q2", "q3"]
    assert items[0]["Generated Outputs"] == "B"
    assert items[1]["Generated Outputs"] == "timeout"
    assert items[0]["Feedback"] == (
        'Expected: "C" | Got: "B" | Score: 0.0 | The output did not match the expected result.'
    )
    assert items[1]["Feedback"] == 'Error: timeout | Expected: "D" | Score: 0.0'


def test_reflective_dataset_falls_back_to_first_successes():
    adapter = DefaultAdapter("openai/gpt-4o-mini")
    traces = [_trace(f"q{i}", "ok", 1.0) for i in range(5)]
    eval_batch = EvaluationBatch(
        outputs=["ok"] * 5, scores=[1.0, 0.95, 1.0, 1.0, 1.0], metrics=[{}] * 5, trajectories=traces
    )
    dataset = adapter.make_reflective_dataset({"system": "sys"}, eval_batch, ["system", "other"])

    assert set(dataset) == {"system", "other"}
    items = dataset["system"]
    assert [item["Inputs"]["userMessage"] for item in items] == ["q0", "q1", "q2"]
    assert items[1]["Feedback"] == "Successful execution with score 0.95"


def test_reflective_dataset_without_traces_is_empty():
    adapter = DefaultAdapter("openai/gpt-4o-mini")
    eval_batch = EvaluationBatch(outputs=[None], scores=[0.0], metrics=[{}])
    assert adapter.make_reflective_dataset({"system": "s"}, eval_batch, ["system"]) == {}


def test_unknown_model_pricing_costs_nothing():
    def broken(**kwargs):
        raise KeyError("no pricing")

    adapter = DefaultAdapter("my/unlisted-model", cost_estimator=broken)
    assert adapter._estimate_cost(_response("x"), "s", "u", "x") == 0.0
