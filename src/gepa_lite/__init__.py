# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from gepa_lite.adapters.default_adapter import DefaultAdapter, DefaultDataInst
from gepa_lite.api import optimize, optimize_async
from gepa_lite.config import GEPAConfig, ModelConfig, PersistenceConfig
from gepa_lite.core.adapter import EvaluationBatch, GEPAAdapter
from gepa_lite.core.engine import GEPAEngine
from gepa_lite.core.pareto import build_pareto_front, dominance, hypervolume_2d
from gepa_lite.core.persistence import ArchiveEvent, FilePersistence, PersistenceProtocol
from gepa_lite.core.result import GEPAResult
from gepa_lite.core.state import ArchiveRecord, HistoryEntry, RunState
from gepa_lite.lm import make_litellm_lm

__all__ = [
    "ArchiveEvent",
    "ArchiveRecord",
    "DefaultAdapter",
    "DefaultDataInst",
    "EvaluationBatch",
    "FilePersistence",
    "GEPAAdapter",
    "GEPAConfig",
    "GEPAEngine",
    "GEPAResult",
    "HistoryEntry",
    "ModelConfig",
    "PersistenceConfig",
    "PersistenceProtocol",
    "RunState",
    "build_pareto_front",
    "dominance",
    "hypervolume_2d",
    "make_litellm_lm",
    "optimize",
    "optimize_async",
]
