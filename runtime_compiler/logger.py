from __future__ import annotations

import logging
from typing import Protocol


class CompilerLogger(Protocol):
    """Sink for compiler output, supplied by the caller."""

    def log_info(self, text: str) -> None: ...

    def log_error(self, text: str) -> None: ...


class LoggingCompilerLogger:
    """CompilerLogger that forwards to a stdlib logger, one record per line."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("runtime_compiler.output")

    def log_info(self, text: str) -> None:
        for line in text.splitlines():
            if line.strip():
                self._logger.info(line)

    def log_error(self, text: str) -> None:
        for line in text.splitlines():
            if line.strip():
                self._logger.error(line)
