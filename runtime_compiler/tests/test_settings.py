"""Unit tests for runtime_compiler.settings."""

import tempfile
import unittest
from pathlib import Path

from runtime_compiler.exceptions import SettingsError
from runtime_compiler.settings import (
    DEFAULT_BASE_FLAGS,
    ToolchainSettings,
    load_toolchain_settings,
)


class TestToolchainSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = ToolchainSettings()
        self.assertEqual(settings.compiler, "clang++")
        self.assertEqual(settings.base_flags, DEFAULT_BASE_FLAGS)
        self.assertEqual(settings.intermediate_path, Path("Runtime"))
        self.assertEqual(settings.object_file_extension, ".o")
        self.assertFalse(settings.use_shell)
        self.assertTrue(settings.merge_stderr)

    def test_rejects_bad_values(self) -> None:
        with self.assertRaises(SettingsError):
            ToolchainSettings(compiler="")
        with self.assertRaises(SettingsError):
            ToolchainSettings(read_chunk_size=0)
        with self.assertRaises(SettingsError):
            ToolchainSettings(drain_grace=-1.0)
        with self.assertRaises(SettingsError):
            ToolchainSettings(use_shell="yes")  # type: ignore[arg-type]


class TestLoadToolchainSettings(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, text: str) -> Path:
        path = self.tmp / "runtime_compiler.toml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_loads_toolchain_table(self) -> None:
        path = self._write(
            """
[toolchain]
compiler = "g++"
base_flags = ["-g", "-shared"]
intermediate_path = "build/Runtime"
use_shell = true
read_chunk_size = 4096
drain_grace = 2
"""
        )

        settings = load_toolchain_settings(path)

        self.assertEqual(settings.compiler, "g++")
        self.assertEqual(settings.base_flags, ("-g", "-shared"))
        self.assertEqual(settings.intermediate_path, Path("build/Runtime"))
        self.assertTrue(settings.use_shell)
        self.assertEqual(settings.read_chunk_size, 4096)
        self.assertEqual(settings.drain_grace, 2.0)
        self.assertTrue(settings.merge_stderr)

    def test_missing_table_uses_defaults(self) -> None:
        path = self._write("[other]\nvalue = 1\n")
        self.assertEqual(load_toolchain_settings(path), ToolchainSettings())

    def test_unknown_key_rejected(self) -> None:
        path = self._write('[toolchain]\ncompilr = "clang++"\n')
        with self.assertRaises(SettingsError) as ctx:
            load_toolchain_settings(path)
        self.assertIn("compilr", str(ctx.exception))

    def test_missing_file(self) -> None:
        with self.assertRaises(SettingsError):
            load_toolchain_settings(self.tmp / "absent.toml")

    def test_invalid_toml(self) -> None:
        path = self._write("[toolchain\ncompiler = ")
        with self.assertRaises(SettingsError):
            load_toolchain_settings(path)

    def test_invalid_value(self) -> None:
        path = self._write("[toolchain]\nread_chunk_size = -5\n")
        with self.assertRaises(SettingsError):
            load_toolchain_settings(path)


if __name__ == "__main__":
    unittest.main()
