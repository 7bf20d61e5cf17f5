# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

import json
import logging
import sys
from typing import Any, Protocol, TextIO

LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}


class LoggerProtocol(Protocol):
    def log(self, message: str, level: str = "info", **data: Any) -> None: ...


def _format_data(data: dict[str, Any]) -> str:
    if not data:
        return ""
    return " " + json.dumps(data, default=str, sort_keys=True)


class StdOutLogger(LoggerProtocol):
    """Prints ``[LEVEL] message {data}`` lines, dropping anything below ``min_level``."""

    def __init__(self, min_level: str = "info", stream: TextIO | None = None):
        if min_level not in LEVELS:
            raise ValueError(f"Unknown log level: {min_level}. Supported: {', '.join(LEVELS)}")
        self.min_level = min_level
        self.stream = stream

    def log(self, message: str, level: str = "info", **data: Any) -> None:
        if LEVELS.get(level, 20) < LEVELS[self.min_level]:
            return
        stream = self.stream if self.stream is not None else sys.stdout
        print(f"[{level.upper()}] {message}{_format_data(data)}", file=stream, flush=True)


class StdlibLogger(LoggerProtocol):
    """Forwards to the standard ``logging`` module."""

    def __init__(self, name: str = "gepa_lite"):
        self._logger = logging.getLogger(name)

    def log(self, message: str, level: str = "info", **data: Any) -> None:
        self._logger.log(LEVELS.get(level, logging.INFO), f"{message}{_format_data(data)}")


class Tee(LoggerProtocol):
    def __init__(self, *loggers: LoggerProtocol):
        self.loggers = loggers

    def log(self, message: str, level: str = "info", **data: Any) -> None:
        for logger in self.loggers:
            logger.log(message, level, **data)
