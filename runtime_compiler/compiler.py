#!/usr/bin/env python3

"""
Runtime compiler front end for hot-reload builds.

Typical use from a frame loop:

    compiler = RuntimeCompiler()
    compiler.initialise(my_logger)
    compiler.run_compile(CompileRequest(["a.cpp"], output_file="out.dylib"))
    ...
    if compiler.get_is_complete():
        load(compiler.last_result)
"""

import time
from pathlib import Path

from runtime_compiler.command_line import CompileRequest
from runtime_compiler.compile_handle import CompileHandle, CompileResult, CompileState
from runtime_compiler.exceptions import (
    CompileTimeoutError,
    CompilerNotInitialisedError,
    RuntimeCompilerException,
)
from runtime_compiler.logger import CompilerLogger
from runtime_compiler.settings import ToolchainSettings
from runtime_compiler.util.completion_poller import get_is_complete
from runtime_compiler.util.process_launcher import run_compile
from runtime_compiler.util.workspace import ClearDirectoryResult, initialise_workspace


class RuntimeCompiler:
    """
    Launches one compile at a time and reports completion by polling.
    """

    def __init__(self, settings: ToolchainSettings | None = None):
        self.settings = settings or ToolchainSettings()
        self._handle: CompileHandle | None = None
        self.workspace_result: ClearDirectoryResult | None = None

    @property
    def object_file_extension(self) -> str:
        return self.settings.object_file_extension

    @property
    def intermediate_path(self) -> Path:
        return self.settings.intermediate_path

    @property
    def handle(self) -> CompileHandle:
        if self._handle is None:
            raise CompilerNotInitialisedError()
        return self._handle

    @property
    def state(self) -> CompileState:
        if self._handle is None:
            return CompileState.IDLE
        return self._handle.state

    @property
    def last_result(self) -> CompileResult | None:
        if self._handle is None:
            return None
        return self._handle.result

    def initialise(self, compiler_logger: CompilerLogger | None) -> None:
        """
        Bind the logger and clear the intermediate directory.

        Must be called before run_compile().
        """
        self._handle = CompileHandle(compiler_logger)
        self.workspace_result = initialise_workspace(
            self.settings.intermediate_path, compiler_logger
        )

    def run_compile(self, request: CompileRequest) -> None:
        """
        Launch a compile and return immediately.

        Raises:
            CompilerNotInitialisedError: If initialise() has not been called.
            CompileInProgressError: If the previous compile is still running.
        """
        run_compile(request, self.handle, self.settings)

    def get_is_complete(self) -> bool:
        """Forward buffered compiler output and report whether the compile exited."""
        if self._handle is None:
            return False
        return get_is_complete(self._handle)

    def wait(self, timeout: float = 60.0, poll_interval: float = 0.01) -> CompileResult:
        """
        Poll until the current compile finishes.

        Raises:
            CompilerLaunchError: If the compile could not be started.
            CompileTimeoutError: If the compile is still running after timeout.
        """
        handle = self.handle
        start_time = time.time()
        while not self.get_is_complete():
            if handle.is_failed:
                assert handle.launch_error is not None
                raise handle.launch_error
            if handle.state is CompileState.IDLE:
                raise RuntimeCompilerException("No compile has been launched")
            if time.time() - start_time > timeout:
                raise CompileTimeoutError(timeout, handle.command)
            time.sleep(poll_interval)

        assert handle.result is not None
        return handle.result
