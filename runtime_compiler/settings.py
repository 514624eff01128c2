#!/usr/bin/env python3
"""
Toolchain settings for runtime compilation.

Settings can be built directly or loaded from the ``[toolchain]`` table of a
TOML file:

    [toolchain]
    compiler = "clang++"
    intermediate_path = "Runtime"
    use_shell = false
"""

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from typeguard import typechecked

from runtime_compiler.exceptions import SettingsError


DEFAULT_BASE_FLAGS: tuple[str, ...] = (
    "-g",
    "-O0",
    "-fvisibility=hidden",
    "-Xlinker",
    "-dylib",
)


@typechecked
@dataclass(frozen=True)
class ToolchainSettings:
    """
    Shared settings for every compile launched by a RuntimeCompiler.
    """

    compiler: str = "clang++"
    base_flags: tuple[str, ...] = DEFAULT_BASE_FLAGS
    intermediate_path: Path = field(default_factory=lambda: Path("Runtime"))
    object_file_extension: str = ".o"

    # Run the rendered command through /bin/sh instead of an argument vector
    use_shell: bool = False
    # Merge stderr into stdout so output arrives as one ordered stream
    merge_stderr: bool = True
    read_chunk_size: int = 512
    # Seconds to wait for the output pipe to reach EOF after the child exits
    drain_grace: float = 1.0

    def __post_init__(self) -> None:
        # Type validation
        for field_name in ["use_shell", "merge_stderr"]:
            value = getattr(self, field_name)
            if not isinstance(value, bool):
                raise SettingsError(f"{field_name} must be bool, got {type(value)}")
        if not isinstance(self.compiler, str) or not self.compiler:
            raise SettingsError("compiler must be a non-empty string")
        if not isinstance(self.read_chunk_size, int) or self.read_chunk_size <= 0:
            raise SettingsError(
                f"read_chunk_size must be positive, got {self.read_chunk_size}"
            )
        if self.drain_grace < 0:
            raise SettingsError(
                f"drain_grace must not be negative, got {self.drain_grace}"
            )


def load_toolchain_settings(path: str | Path) -> ToolchainSettings:
    """
    Load ToolchainSettings from the [toolchain] table of a TOML file.

    Missing keys keep their defaults. Unknown keys are rejected so typos do not
    silently fall back to defaults.

    Raises:
        SettingsError: If the file is missing, malformed, or has bad values.
    """
    path = Path(path)
    if not path.exists():
        raise SettingsError(f"Toolchain settings not found: {path}")

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(f"Invalid TOML in {path}: {e}") from e

    table: dict[str, Any] = config.get("toolchain", {})
    known = {f.name for f in fields(ToolchainSettings)}
    unknown = sorted(set(table) - known)
    if unknown:
        raise SettingsError(f"Unknown toolchain settings in {path}: {unknown}")

    kwargs: dict[str, Any] = dict(table)
    if "base_flags" in kwargs:
        kwargs["base_flags"] = tuple(kwargs["base_flags"])
    if "intermediate_path" in kwargs:
        kwargs["intermediate_path"] = Path(kwargs["intermediate_path"])
    if isinstance(kwargs.get("drain_grace"), int):
        kwargs["drain_grace"] = float(kwargs["drain_grace"])

    try:
        return ToolchainSettings(**kwargs)
    except TypeError as e:
        raise SettingsError(f"Invalid toolchain settings in {path}: {e}") from e
