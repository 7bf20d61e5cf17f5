# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""
Checkpoint and archive-event persistence.

The checkpoint is a single JSON document that is fully rewritten on every
save. Archive events are append-only JSONL lines so downstream tooling can
follow a run without bespoke parsers.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Protocol, runtime_checkable

from gepa_lite.core.state import RunState

logger = logging.getLogger(__name__)

EventKind = Literal["start", "accepted", "rejected", "stagnation", "finish"]


@dataclass
class ArchiveEvent:
    iteration: int
    event: EventKind
    data: Any = None
    ts: float | None = None

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "ts": self.ts if self.ts is not None else time.time(),
            "iteration": self.iteration,
            "event": self.event,
        }
        if self.data is not None:
            record["data"] = self.data
        return record


@runtime_checkable
class PersistenceProtocol(Protocol):
    def save_checkpoint(self, state: RunState) -> None: ...

    def load_checkpoint(self) -> RunState | None: ...

    def append_archive_event(self, event: ArchiveEvent) -> None: ...


class FilePersistence:
    """``checkpoint.json`` plus an append-only archive log under one directory."""

    def __init__(self, run_dir: str | Path, archive_file: str = "archive.jsonl") -> None:
        self.run_dir = Path(run_dir)
        self.archive_path = self.run_dir / archive_file
        self.checkpoint_path = self.run_dir / "checkpoint.json"

    def ensure_dir(self) -> None:
        self.run_dir.mkdir(parents=True, exist_ok=True)

    def save_checkpoint(self, state: RunState) -> None:
        """Atomically overwrite the checkpoint: write a temp file, then rename."""
        self.ensure_dir()
        temp_path = self.checkpoint_path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        temp_path.replace(self.checkpoint_path)

    def load_checkpoint(self) -> RunState | None:
        """Return the saved state, or None if it is missing or unreadable."""
        if not self.checkpoint_path.exists():
            return None
        try:
            with self.checkpoint_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return RunState.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable checkpoint {self.checkpoint_path}: {e}")
            return None

    def has_checkpoint(self) -> bool:
        return self.checkpoint_path.exists()

    def clear_checkpoint(self) -> None:
        if self.checkpoint_path.exists():
            self.checkpoint_path.unlink()

    def append_archive_event(self, event: ArchiveEvent) -> None:
        self.ensure_dir()
        with self.archive_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(event.to_dict()) + "\n")

    def read_archive_events(self) -> list[dict[str, Any]]:
        if not self.archive_path.exists():
            return []
        lines = self.archive_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]
