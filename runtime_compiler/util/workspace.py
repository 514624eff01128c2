# pyright: reportUnknownMemberType=false
"""
Scratch directory management for intermediate build artifacts.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from runtime_compiler.logger import CompilerLogger


logger = logging.getLogger(__name__)


@dataclass
class ClearDirectoryResult:
    """What clear_directory() removed and what it could not."""

    path: Path
    removed: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)
    directory_removed: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed and (self.directory_removed or not self.path.exists())


def make_writable(path: Path) -> None:
    "Clear the readonly bit on a file, or on a directory tree and its contents"
    os.chmod(path, 0o777)
    if path.is_dir() and not path.is_symlink():
        for dirpath, dirnames, filenames in os.walk(path):
            for name in dirnames + filenames:
                child = Path(dirpath) / name
                if not child.is_symlink():
                    os.chmod(child, 0o777)


def _remove_entry(entry: Path) -> None:
    is_dir = entry.is_dir() and not entry.is_symlink()
    remove: Callable[[], Any] = (
        (lambda: shutil.rmtree(entry)) if is_dir else entry.unlink
    )
    try:
        remove()
    except PermissionError:
        # Read-only entries; retry once with write permission restored
        make_writable(entry)
        remove()


def clear_directory(path: str | Path) -> ClearDirectoryResult:
    """
    Remove every entry in a directory, then the directory itself.

    Entries are removed one at a time so a single locked or in-use file does
    not stop the rest from being cleaned up. Missing directories are a no-op.

    Returns:
        ClearDirectoryResult: Removed entries and (entry, reason) failures
    """
    path = Path(path)
    result = ClearDirectoryResult(path=path)
    if not path.is_dir():
        return result

    for entry in sorted(path.iterdir()):
        try:
            _remove_entry(entry)
            result.removed.append(entry)
        except OSError as e:
            logger.warning("Failed to remove %s: %s", entry, e)
            result.failed.append((entry, str(e)))

    try:
        path.rmdir()
        result.directory_removed = True
    except OSError as e:
        result.failed.append((path, str(e)))

    return result


def initialise_workspace(
    path: str | Path, log: CompilerLogger | None = None
) -> ClearDirectoryResult:
    """Clear the intermediate directory before any compile is launched."""
    result = clear_directory(path)
    if result.failed and log is not None:
        names = ", ".join(str(entry) for entry, _ in result.failed)
        log.log_error(
            f"Could not remove {len(result.failed)} entries from intermediate "
            f"directory {result.path}: {names}\n"
        )
    logger.debug(
        "Cleared intermediate directory %s: %d removed, %d failed",
        result.path,
        len(result.removed),
        len(result.failed),
    )
    return result
