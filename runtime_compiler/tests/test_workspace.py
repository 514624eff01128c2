"""Unit tests for runtime_compiler.util.workspace."""

import os
import stat
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from runtime_compiler.util import workspace
from runtime_compiler.util.workspace import clear_directory, initialise_workspace


class _RecordingLogger:
    def __init__(self) -> None:
        self.info: list[str] = []
        self.errors: list[str] = []

    def log_info(self, text: str) -> None:
        self.info.append(text)

    def log_error(self, text: str) -> None:
        self.errors.append(text)


class TestClearDirectory(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "Runtime"
        self.root.mkdir()

    def tearDown(self) -> None:
        # Restore permissions so TemporaryDirectory can clean up
        for dirpath, dirnames, filenames in os.walk(self._tmp.name):
            for name in dirnames + filenames:
                os.chmod(os.path.join(dirpath, name), 0o777)
        self._tmp.cleanup()

    def test_removes_all_entries_and_directory(self) -> None:
        (self.root / "a.o").write_bytes(b"obj")
        (self.root / "b.o").write_bytes(b"obj")
        nested = self.root / "nested"
        nested.mkdir()
        (nested / "c.o").write_bytes(b"obj")

        result = clear_directory(self.root)

        self.assertTrue(result.ok)
        self.assertTrue(result.directory_removed)
        self.assertEqual(len(result.removed), 3)
        self.assertFalse(self.root.exists())

    def test_read_only_entries(self) -> None:
        read_only_file = self.root / "locked.o"
        read_only_file.write_bytes(b"obj")
        os.chmod(read_only_file, stat.S_IREAD)
        read_only_dir = self.root / "locked_dir"
        read_only_dir.mkdir()
        (read_only_dir / "inner.o").write_bytes(b"obj")
        os.chmod(read_only_dir, stat.S_IREAD | stat.S_IEXEC)

        result = clear_directory(self.root)

        self.assertEqual(result.failed, [])
        self.assertFalse(self.root.exists())

    def test_missing_directory_is_noop(self) -> None:
        missing = self.root / "missing"
        result = clear_directory(missing)

        self.assertTrue(result.ok)
        self.assertEqual(result.removed, [])
        self.assertFalse(result.directory_removed)

    def test_failed_entry_does_not_abort(self) -> None:
        for name in ("a.o", "b.o", "c.o"):
            (self.root / name).write_bytes(b"obj")

        real_remove = workspace._remove_entry

        def flaky_remove(entry: Path) -> None:
            if entry.name == "b.o":
                raise PermissionError(13, "in use", str(entry))
            real_remove(entry)

        with mock.patch.object(workspace, "_remove_entry", side_effect=flaky_remove):
            result = clear_directory(self.root)

        self.assertEqual([p.name for p in result.removed], ["a.o", "c.o"])
        failed_names = [p.name for p, _ in result.failed]
        self.assertIn("b.o", failed_names)
        self.assertFalse(result.ok)
        self.assertFalse(result.directory_removed)
        self.assertEqual(sorted(p.name for p in self.root.iterdir()), ["b.o"])

    def test_initialise_reports_failures_once(self) -> None:
        (self.root / "a.o").write_bytes(b"obj")
        log = _RecordingLogger()

        with mock.patch.object(
            workspace, "_remove_entry", side_effect=OSError(16, "busy")
        ):
            result = initialise_workspace(self.root, log)

        self.assertEqual(len(log.errors), 1)
        self.assertIn("a.o", log.errors[0])
        self.assertEqual(len(result.failed), 2)

    def test_initialise_clean_directory_logs_nothing(self) -> None:
        (self.root / "a.o").write_bytes(b"obj")
        log = _RecordingLogger()

        initialise_workspace(self.root, log)

        self.assertEqual(log.errors, [])
        self.assertEqual(log.info, [])
        self.assertFalse(self.root.exists())


if __name__ == "__main__":
    unittest.main()
