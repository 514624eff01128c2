#!/usr/bin/env python3

"""
Command line rendering for runtime compiles.

A CompileRequest is rendered either as an argument vector (the default launch
path, no shell re-parsing) or as a single shell command string of the form

    clang++ -g -O0 -fvisibility=hidden -Xlinker -dylib -I"inc" -L"lib" -o out.so "a.cpp"
"""

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from typeguard import typechecked

from runtime_compiler.settings import ToolchainSettings


def _freeze_paths(paths: Sequence[str | Path]) -> tuple[Path, ...]:
    if isinstance(paths, (str, Path)):
        # A bare string would otherwise be split into characters
        return (Path(paths),)
    return tuple(Path(p) for p in paths)


@typechecked
@dataclass(frozen=True)
class CompileRequest:
    """
    What to build: sources, search paths, options and the output artifact.

    Sequences are frozen into tuples of Path, preserving input order.
    """

    files_to_compile: Sequence[str | Path]
    include_dirs: Sequence[str | Path] = ()
    library_dirs: Sequence[str | Path] = ()
    compile_options: str = ""
    link_options: str = ""
    output_file: str | Path = Path("a.out")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "files_to_compile", _freeze_paths(self.files_to_compile)
        )
        object.__setattr__(self, "include_dirs", _freeze_paths(self.include_dirs))
        object.__setattr__(self, "library_dirs", _freeze_paths(self.library_dirs))
        object.__setattr__(self, "output_file", Path(self.output_file))


def build_compile_args(
    request: CompileRequest, settings: ToolchainSettings | None = None
) -> list[str]:
    """
    Build the argument vector for compiling and linking a request.

    Args:
        request: The compile request to render
        settings: Toolchain settings, defaults used when None

    Returns:
        list[str]: Compiler followed by its arguments
    """
    settings = settings or ToolchainSettings()
    cmd = [settings.compiler]
    cmd.extend(settings.base_flags)
    cmd.extend(shlex.split(request.compile_options))

    for include_dir in request.include_dirs:
        cmd.append(f"-I{include_dir}")

    for library_dir in request.library_dirs:
        cmd.append(f"-L{library_dir}")

    cmd.extend(shlex.split(request.link_options))
    cmd.extend(["-o", str(request.output_file)])
    cmd.extend(str(source) for source in request.files_to_compile)
    return cmd


def build_command_line(
    request: CompileRequest, settings: ToolchainSettings | None = None
) -> str:
    """
    Render a request as one shell-executable command string.

    Include dirs, library dirs and sources are each wrapped in double quotes to
    tolerate embedded spaces. Paths are not validated or escaped, so the result
    must only be run in a trusted context.
    """
    settings = settings or ToolchainSettings()
    parts = [settings.compiler]
    parts.extend(settings.base_flags)
    if request.compile_options.strip():
        parts.append(request.compile_options.strip())

    for include_dir in request.include_dirs:
        parts.append(f'-I"{include_dir}"')

    for library_dir in request.library_dirs:
        parts.append(f'-L"{library_dir}"')

    if request.link_options.strip():
        parts.append(request.link_options.strip())

    parts.append(f"-o {request.output_file}")

    for source in request.files_to_compile:
        parts.append(f'"{source}"')

    return " ".join(parts)
