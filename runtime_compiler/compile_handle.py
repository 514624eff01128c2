"""
Tracking state for one compilation at a time.

A CompileHandle is created once and re-armed by every launch. The state moves
IDLE -> LAUNCHING -> RUNNING -> COMPLETE, or LAUNCHING -> FAILED when the
process could not be started. COMPLETE and FAILED hold until the next launch.
"""

from __future__ import annotations

import codecs
import subprocess
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from queue import Queue
from typing import Any

from runtime_compiler.exceptions import CompilerLaunchError
from runtime_compiler.logger import CompilerLogger


OUTPUT_STREAM = "output"
STDERR_STREAM = "stderr"


class CompileState(Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class OutputChunk:
    """A block of bytes read from one of the child's output pipes."""

    stream: str
    data: bytes


@dataclass
class CompileResult:
    """
    Outcome of a compile.

    return_code is None when no process was ever started, in which case error
    describes why.
    """

    ok: bool
    return_code: int | None
    command: str
    duration: float = 0.0
    error: str = ""


class CompileHandle:
    """Mutable state of one in-flight or completed compilation."""

    def __init__(self, logger: CompilerLogger | None = None) -> None:
        self.logger = logger
        self.is_complete: bool = False
        self.pid: int = 0
        self.state: CompileState = CompileState.IDLE
        self.command: str = ""
        self.result: CompileResult | None = None
        self.launch_error: CompilerLaunchError | None = None
        self.proc: subprocess.Popen[Any] | None = None
        self.output_queue: Queue[OutputChunk] = Queue()
        self.completion: Future[CompileResult] | None = None
        self.reader_threads: list[threading.Thread] = []
        self.draining_late_output: bool = False
        self.start_time: float | None = None
        self._decoders: dict[str, codecs.IncrementalDecoder] = {}

    @property
    def is_failed(self) -> bool:
        return self.state is CompileState.FAILED

    @property
    def is_running(self) -> bool:
        return self.state is CompileState.RUNNING and self.pid != 0

    def arm(self, command: str) -> None:
        """Reset process-specific fields for a fresh launch."""
        self.is_complete = False
        self.pid = 0
        self.state = CompileState.LAUNCHING
        self.command = command
        self.result = None
        self.launch_error = None
        self.proc = None
        self.output_queue = Queue()
        self.completion = Future()
        self.reader_threads = []
        self.draining_late_output = False
        self.start_time = time.time()
        self._decoders = {}

    def decode(self, chunk: OutputChunk, final: bool = False) -> str:
        """Decode a chunk, carrying partial multibyte sequences to the next one."""
        decoder = self._decoders.get(chunk.stream)
        if decoder is None:
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            self._decoders[chunk.stream] = decoder
        return decoder.decode(chunk.data, final=final)

    def flush_decoders(self) -> dict[str, str]:
        """Return whatever text is still buffered in the per-stream decoders."""
        tails = {
            stream: decoder.decode(b"", final=True)
            for stream, decoder in self._decoders.items()
        }
        self._decoders = {}
        return {stream: text for stream, text in tails.items() if text}

    def release_channel(self) -> None:
        """Close the orchestrator's ends of the output pipes.

        Pipes still held by a live reader thread are left for that thread to
        close at EOF.
        """
        if self.proc is None:
            return
        if any(thread.is_alive() for thread in self.reader_threads):
            return
        for pipe in (self.proc.stdout, self.proc.stderr):
            if pipe is not None and not pipe.closed:
                try:
                    pipe.close()
                except (ValueError, OSError):
                    # Already closed by the reader thread
                    pass
