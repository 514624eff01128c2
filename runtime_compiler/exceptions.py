#!/usr/bin/env python3
"""Exceptions raised by the runtime compiler layer."""

from typing import Optional


class RuntimeCompilerException(Exception):
    """Base exception for runtime compiler failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CompilerNotInitialisedError(RuntimeCompilerException):
    """Raised when a compile is requested before the workspace is initialised"""

    def __init__(
        self, message: str = "RuntimeCompiler.initialise() must be called first"
    ):
        super().__init__(message)


class CompileInProgressError(RuntimeCompilerException):
    """Raised when a handle that still owns a live process is launched again"""

    def __init__(self, pid: int, message: Optional[str] = None):
        super().__init__(
            message or f"A compile is already running on this handle (PID {pid})"
        )
        self.pid = pid


class CompilerLaunchError(RuntimeCompilerException):
    """Raised when the compiler process could not be started.

    ``kind`` is either ``"resource_exhaustion"`` (pipe or process creation
    failed) or ``"launch_failure"`` (the toolchain image could not be run).
    """

    RESOURCE_EXHAUSTION = "resource_exhaustion"
    LAUNCH_FAILURE = "launch_failure"

    def __init__(self, message: str, kind: str, command: str = ""):
        super().__init__(message)
        self.kind = kind
        self.command = command


class CompileTimeoutError(RuntimeCompilerException):
    """Raised by the blocking wait helper when a compile outlives its timeout"""

    def __init__(self, timeout: float, command: str = ""):
        super().__init__(f"Compile did not finish within {timeout} seconds")
        self.timeout = timeout
        self.command = command


class SettingsError(RuntimeCompilerException):
    """Raised when toolchain settings cannot be loaded"""
