# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from dataclasses import dataclass, field
from typing import Any, ClassVar

from gepa_lite.core.adapter import Candidate
from gepa_lite.core.rng import Xorshift32

ProgramIdx = int
ObjectiveScores = dict[str, float]


def _parse_sampler_state(raw: Any) -> dict[str, Any] | None:
    """Normalize a saved sampler state; raises on anything malformed."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"sampler_state must be an object, got {type(raw).__name__}")
    shuffled_ids = [int(i) for i in raw["shuffled_ids"]]
    id_freqs = [[int(i), int(n)] for i, n in raw["id_freqs"]]
    return {"shuffled_ids": shuffled_ids, "epoch": int(raw["epoch"]), "id_freqs": id_freqs}


@dataclass
class ArchiveRecord:
    candidate: Candidate
    scores: ObjectiveScores
    scalar_score: float
    parent: ProgramIdx | None = None

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "candidate": dict(self.candidate),
            "scores": dict(self.scores),
            "scalar_score": self.scalar_score,
        }
        if self.parent is not None:
            record["parent"] = self.parent
        return record

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ArchiveRecord":
        return ArchiveRecord(
            candidate={str(k): str(v) for k, v in d["candidate"].items()},
            scores={str(k): float(v) for k, v in d["scores"].items()},
            scalar_score=float(d["scalar_score"]),
            parent=d.get("parent"),
        )


@dataclass
class HistoryEntry:
    iteration: int
    candidate: Candidate
    scores: ObjectiveScores
    accepted: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "candidate": dict(self.candidate),
            "scores": dict(self.scores),
            "accepted": self.accepted,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "HistoryEntry":
        return HistoryEntry(
            iteration=int(d["iteration"]),
            candidate=dict(d["candidate"]),
            scores={str(k): float(v) for k, v in d.get("scores", {}).items()},
            accepted=bool(d["accepted"]),
        )


@dataclass
class RunState:
    """
    Everything a run needs to continue exactly where it stopped.

    The archive is append-only and an index into it is a record's identity for
    the whole run. ``instance_scores`` is parallel to ``archive``: one row of
    per-validation-instance scores per record, all rows in the same instance
    order. Only the engine mutates a RunState.
    """

    _SCHEMA_VERSION: ClassVar[int] = 1

    archive: list[ArchiveRecord] = field(default_factory=list)
    instance_scores: list[list[float]] = field(default_factory=list)
    iteration: int = 0
    total_metric_calls: int = 0
    total_cost_usd: float = 0.0
    rng: Xorshift32 = field(default_factory=Xorshift32)
    stagnation: int = 0
    sampler_state: dict[str, Any] | None = None
    history: list[HistoryEntry] = field(default_factory=list)

    @property
    def rng_state(self) -> int:
        return self.rng.state

    @property
    def scalar_scores(self) -> list[float]:
        return [record.scalar_score for record in self.archive]

    @property
    def component_names(self) -> list[str]:
        return list(self.archive[0].candidate.keys()) if self.archive else []

    def objective_records(self) -> list[tuple[ProgramIdx, ObjectiveScores]]:
        return [(idx, record.scores) for idx, record in enumerate(self.archive)]

    def add_record(self, record: ArchiveRecord, instance_scores: list[float]) -> ProgramIdx:
        self.archive.append(record)
        self.instance_scores.append(list(instance_scores))
        return len(self.archive) - 1

    def charge(self, num_calls: int, cost_usd: float) -> None:
        self.total_metric_calls += num_calls
        self.total_cost_usd += cost_usd

    def is_consistent(self) -> bool:
        """Raise ``ValueError`` when the archive, score matrix or lineage disagree."""
        if not self.archive:
            raise ValueError("archive must contain the seed candidate")
        if len(self.archive) != len(self.instance_scores):
            raise ValueError(
                f"{len(self.archive)} archive records but {len(self.instance_scores)} instance score rows"
            )
        names = set(self.archive[0].candidate.keys())
        for idx, record in enumerate(self.archive):
            if set(record.candidate.keys()) != names:
                raise ValueError(f"record {idx} changed the component set")
            if record.parent is not None and not 0 <= record.parent < idx:
                raise ValueError(f"record {idx} has a parent that does not precede it")
        width = len(self.instance_scores[0])
        if any(len(row) != width for row in self.instance_scores):
            raise ValueError("instance score rows have different lengths")
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": RunState._SCHEMA_VERSION,
            "iteration": self.iteration,
            "total_metric_calls": self.total_metric_calls,
            "total_cost_usd": self.total_cost_usd,
            "rng_state": self.rng_state,
            "candidates": [record.to_dict() for record in self.archive],
            "per_instance_scores": [list(row) for row in self.instance_scores],
            "stagnation": self.stagnation,
            "sampler_state": self.sampler_state,
            "history": [entry.to_dict() for entry in self.history],
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RunState":
        state = RunState(
            archive=[ArchiveRecord.from_dict(rec) for rec in d["candidates"]],
            instance_scores=[[float(v) for v in row] for row in d["per_instance_scores"]],
            iteration=int(d["iteration"]),
            total_metric_calls=int(d["total_metric_calls"]),
            total_cost_usd=float(d["total_cost_usd"]),
            rng=Xorshift32(state=int(d["rng_state"])),
            stagnation=int(d.get("stagnation", 0)),
            sampler_state=_parse_sampler_state(d.get("sampler_state")),
            history=[HistoryEntry.from_dict(h) for h in d.get("history", [])],
        )
        state.is_consistent()
        return state
