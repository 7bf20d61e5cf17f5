# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from gepa_lite.logging.logger import LoggerProtocol, StdlibLogger, StdOutLogger, Tee
from gepa_lite.logging.utils import format_pareto_table, log_iteration_summary, render_iteration_summary

__all__ = [
    "LoggerProtocol",
    "StdOutLogger",
    "StdlibLogger",
    "Tee",
    "format_pareto_table",
    "log_iteration_summary",
    "render_iteration_summary",
]
