import json

import pytest

from gepa_lite.core.persistence import ArchiveEvent, FilePersistence, PersistenceProtocol
from gepa_lite.core.rng import Xorshift32
from gepa_lite.core.state import ArchiveRecord, HistoryEntry, RunState


@pytest.fixture
def state():
    s = RunState(rng=Xorshift32(42))
    s.add_record(
        ArchiveRecord(candidate={"instruction": "seed"}, scores={"correctness": 0.5, "latency": -4.0}, scalar_score=0.5),
        [1.0, 0.0],
    )
    s.add_record(
        ArchiveRecord(
            candidate={"instruction": "child"},
            scores={"correctness": 1.0, "latency": -5.0},
            scalar_score=1.0,
            parent=0,
        ),
        [1.0, 1.0],
    )
    s.iteration = 3
    s.total_metric_calls = 12
    s.total_cost_usd = 0.25
    s.stagnation = 1
    s.rng.random()
    s.sampler_state = {"shuffled_ids": [1, 0], "epoch": 0, "id_freqs": [[0, 1], [1, 1]]}
    s.history.append(HistoryEntry(iteration=1, candidate={"instruction": "child"}, scores={}, accepted=False))
    return s


def test_run_state_dict_round_trip(state):
    restored = RunState.from_dict(json.loads(json.dumps(state.to_dict())))
    assert restored.to_dict() == state.to_dict()
    assert restored.rng_state == state.rng_state
    assert restored.archive[1].parent == 0
    assert restored.archive[0].parent is None


def test_checkpoint_keys(state):
    d = state.to_dict()
    for key in ("iteration", "total_metric_calls", "total_cost_usd", "rng_state", "candidates", "per_instance_scores"):
        assert key in d
    assert "parent" not in d["candidates"][0]


def test_is_consistent_rejects_mismatched_matrix(state):
    state.instance_scores.pop()
    with pytest.raises(ValueError):
        state.is_consistent()


def test_file_persistence_save_and_load(tmp_path, state):
    persistence = FilePersistence(tmp_path / "run")
    assert isinstance(persistence, PersistenceProtocol)
    assert persistence.load_checkpoint() is None

    persistence.save_checkpoint(state)
    assert (tmp_path / "run" / "checkpoint.json").exists()
    assert not (tmp_path / "run" / "checkpoint.tmp").exists()

    loaded = persistence.load_checkpoint()
    assert loaded is not None
    assert loaded.to_dict() == state.to_dict()


def test_checkpoint_is_overwritten(tmp_path, state):
    persistence = FilePersistence(tmp_path)
    persistence.save_checkpoint(state)
    state.iteration = 4
    persistence.save_checkpoint(state)
    assert json.loads((tmp_path / "checkpoint.json").read_text())["iteration"] == 4


@pytest.mark.parametrize(
    "content",
    ["{not json", "[]", json.dumps({"iteration": 1}), json.dumps({"candidates": [], "per_instance_scores": []})],
)
def test_unreadable_checkpoint_loads_as_none(tmp_path, content):
    (tmp_path / "checkpoint.json").write_text(content)
    assert FilePersistence(tmp_path).load_checkpoint() is None


def test_archive_events_are_appended(tmp_path):
    persistence = FilePersistence(tmp_path, archive_file="events.jsonl")
    persistence.append_archive_event(ArchiveEvent(iteration=0, event="start"))
    persistence.append_archive_event(ArchiveEvent(iteration=1, event="accepted", data={"scalar_score": 1.0}, ts=5.0))

    lines = (tmp_path / "events.jsonl").read_text().splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert first["event"] == "start"
    assert "data" not in first
    assert isinstance(first["ts"], float)
    assert second == {"ts": 5.0, "iteration": 1, "event": "accepted", "data": {"scalar_score": 1.0}}
    assert [e["event"] for e in persistence.read_archive_events()] == ["start", "accepted"]


def test_clear_checkpoint(tmp_path, state):
    persistence = FilePersistence(tmp_path)
    assert not persistence.has_checkpoint()
    persistence.save_checkpoint(state)
    assert persistence.has_checkpoint()
    persistence.clear_checkpoint()
    assert not persistence.has_checkpoint()
    assert persistence.load_checkpoint() is None


@pytest.mark.parametrize(
    "sampler_state",
    [{"epoch": 0}, [1, 2], {"shuffled_ids": [0, "x"], "epoch": 0, "id_freqs": []}],
)
def test_malformed_sampler_state_loads_as_none(tmp_path, state, sampler_state):
    persistence = FilePersistence(tmp_path)
    persistence.save_checkpoint(state)
    data = json.loads((tmp_path / "checkpoint.json").read_text())
    data["sampler_state"] = sampler_state
    (tmp_path / "checkpoint.json").write_text(json.dumps(data))

    assert persistence.load_checkpoint() is None


def test_mismatched_score_matrix_loads_as_none(tmp_path, state):
    data = state.to_dict()
    data["per_instance_scores"].pop()
    (tmp_path / "checkpoint.json").write_text(json.dumps(data))
    assert FilePersistence(tmp_path).load_checkpoint() is None
