import re

import pytest

from gepa_lite.core.adapter import EvaluationBatch

TARGETS = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta"]


class KeywordAdapter:
    """
    Deterministic adapter: an instance scores 1.0 when its target word appears
    in the ``instruction`` component. Latency grows with the prompt length so
    correctness and latency pull in opposite directions.
    """

    propose_new_texts = None

    def __init__(self, cost_per_call: float = 0.001):
        self.cost_per_call = cost_per_call
        self.calls: list[tuple[int, bool]] = []

    def evaluate(self, batch, candidate, capture_traces=False):
        self.calls.append((len(batch), capture_traces))
        text = candidate["instruction"]
        words = set(text.split())
        scores = [1.0 if inst["target"] in words else 0.0 for inst in batch]
        metrics = [{"latency_ms": float(len(text)), "cost_usd": self.cost_per_call} for _ in batch]
        trajectories = None
        if capture_traces:
            trajectories = [{"target": inst["target"], "score": s} for inst, s in zip(batch, scores)]
        return EvaluationBatch(outputs=[text] * len(batch), scores=scores, metrics=metrics, trajectories=trajectories)

    def make_reflective_dataset(self, candidate, eval_batch, components_to_update):
        feedback = [
            {"Feedback": f"missing {traj['target']}"} for traj in eval_batch.trajectories if traj["score"] < 1.0
        ]
        return {name: feedback for name in components_to_update}


def keyword_reflection_lm(prompt: str) -> str:
    """Pure function of the prompt: appends the first missing word, except that "beta" is never learned."""
    current = prompt.split("Current Text:\n", 1)[1].split("\n\nExecution Examples", 1)[0]
    match = re.search(r"missing (\w+)", prompt)
    if match is None or match.group(1) == "beta":
        return f"{current} noise"
    return f"{current} {match.group(1)}"


@pytest.fixture
def trainset():
    return [{"id": i, "target": t} for i, t in enumerate(TARGETS)]


@pytest.fixture
def adapter():
    return KeywordAdapter()


@pytest.fixture
def quiet_logger():
    class _Collect:
        def __init__(self):
            self.records = []

        def log(self, message, level="info", **data):
            self.records.append((level, message, data))

    return _Collect()


@pytest.fixture
def keyword_adapter_cls():
    return KeywordAdapter


@pytest.fixture
def keyword_lm():
    return keyword_reflection_lm
