"""Asynchronous compiler invocation for runtime hot-reload builds."""

from runtime_compiler.command_line import (
    CompileRequest,
    build_command_line,
    build_compile_args,
)
from runtime_compiler.compile_handle import (
    CompileHandle,
    CompileResult,
    CompileState,
    OutputChunk,
)
from runtime_compiler.compiler import RuntimeCompiler
from runtime_compiler.exceptions import (
    CompileInProgressError,
    CompilerLaunchError,
    CompilerNotInitialisedError,
    CompileTimeoutError,
    RuntimeCompilerException,
    SettingsError,
)
from runtime_compiler.logger import CompilerLogger, LoggingCompilerLogger
from runtime_compiler.settings import ToolchainSettings, load_toolchain_settings


__all__ = [
    "CompileHandle",
    "CompileInProgressError",
    "CompileRequest",
    "CompileResult",
    "CompileState",
    "CompileTimeoutError",
    "CompilerLaunchError",
    "CompilerLogger",
    "CompilerNotInitialisedError",
    "LoggingCompilerLogger",
    "OutputChunk",
    "RuntimeCompiler",
    "RuntimeCompilerException",
    "SettingsError",
    "ToolchainSettings",
    "build_command_line",
    "build_compile_args",
    "load_toolchain_settings",
]
