# pyright: reportUnknownMemberType=false
"""
Launch a compiler toolchain as a detached child process.

run_compile() returns as soon as the child exists. A reader thread per output
pipe keeps the pipe drained into the handle's queue, and a watcher thread
resolves handle.completion once the child has exited and its output has
reached EOF. Nothing here touches the caller's logger except the launch
itself; output is forwarded by the completion poller on the caller's thread.
"""

import errno
import logging
import select
import subprocess
import threading
import time
import warnings
from typing import IO, Any, Callable

from runtime_compiler.command_line import (
    CompileRequest,
    build_command_line,
    build_compile_args,
)
from runtime_compiler.compile_handle import (
    OUTPUT_STREAM,
    STDERR_STREAM,
    CompileHandle,
    CompileResult,
    CompileState,
    OutputChunk,
)
from runtime_compiler.exceptions import CompileInProgressError, CompilerLaunchError
from runtime_compiler.settings import ToolchainSettings


logger = logging.getLogger(__name__)

_LAUNCH_FAILURE_ERRNOS = {errno.ENOENT, errno.EACCES, errno.ENOEXEC, errno.ENOTDIR}

# Floor for drain_grace so a reader between two reads is never given up on
_MIN_IDLE_BEFORE_GIVING_UP = 0.05
_READER_JOIN_INTERVAL = 0.05


class ProcessOutputReader:
    """Dedicated reader that drains one of the child's pipes into a queue.

    Reads raw byte blocks as they become available so output is forwarded in
    write order without waiting for line endings.
    """

    def __init__(
        self,
        pipe: IO[bytes],
        stream: str,
        chunk_size: int,
        on_output: Callable[[OutputChunk], None],
    ) -> None:
        self._pipe = pipe
        self._stream = stream
        self._chunk_size = chunk_size
        self._on_output = on_output
        self.bytes_read: int = 0
        self.last_read_ts: float = time.time()
        self.thread: threading.Thread | None = None

    def start(self, name: str) -> threading.Thread:
        self.thread = threading.Thread(target=self.run, name=name, daemon=True)
        self.thread.start()
        return self.thread

    def is_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def has_pending_data(self) -> bool:
        """True if the pipe holds bytes the reader has not picked up yet."""
        try:
            readable, _, _ = select.select([self._pipe], [], [], 0)
        except (ValueError, OSError):
            # Closed by the reader, or pipes are not selectable on this platform
            return False
        return bool(readable)

    def run(self) -> None:
        """Read blocks until EOF, then close the pipe."""
        try:
            while True:
                data = self._pipe.read(self._chunk_size)
                if not data:
                    break
                self._on_output(OutputChunk(self._stream, data))
                self.bytes_read += len(data)
                self.last_read_ts = time.time()
        except (ValueError, OSError) as e:
            # Normal shutdown scenarios include closed file descriptors.
            if "closed file" in str(e) or "Bad file descriptor" in str(e):
                warnings.warn(f"Output reader encountered closed file: {e}")
            else:
                logger.warning("Output reader encountered error: %s", e)
        finally:
            if not self._pipe.closed:
                try:
                    self._pipe.close()
                except (ValueError, OSError) as err:
                    warnings.warn(f"Output reader encountered error: {err}")


class ProcessWatcher:
    """Background watcher that resolves the handle's completion future.

    After the child exits, each reader is waited on until it reaches EOF. A
    reader is only given up on once it has been idle for drain_grace with
    nothing left in its pipe, which means a descendant of the child still
    holds the write end. That reader keeps running and the completion poller
    forwards whatever it reads later.
    """

    def __init__(
        self,
        handle: CompileHandle,
        proc: subprocess.Popen[Any],
        readers: list[ProcessOutputReader],
        drain_grace: float,
    ) -> None:
        self._handle = handle
        self._proc = proc
        self._readers = readers
        self._drain_grace = max(drain_grace, _MIN_IDLE_BEFORE_GIVING_UP)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name=f"CompileWatcher-{self._proc.pid}", daemon=True
        )
        self._thread.start()

    def _is_stalled(
        self, reader: ProcessOutputReader, bytes_before: int, exit_ts: float
    ) -> bool:
        # Idle time counts from the later of exit and the last read
        idle = time.time() - max(reader.last_read_ts, exit_ts)
        return (
            reader.bytes_read == bytes_before
            and idle >= self._drain_grace
            and not reader.has_pending_data()
        )

    def _wait_for_reader(self, reader: ProcessOutputReader, exit_ts: float) -> None:
        assert reader.thread is not None
        while reader.is_alive():
            bytes_before = reader.bytes_read
            reader.thread.join(timeout=_READER_JOIN_INTERVAL)
            if not reader.is_alive():
                return
            if self._is_stalled(reader, bytes_before, exit_ts):
                logger.warning(
                    "Output pipe of PID %d idle for %.2fs after exit with no "
                    "pending data; a descendant process still holds it open",
                    self._proc.pid,
                    self._drain_grace,
                )
                return

    def _run(self) -> None:
        completion = self._handle.completion
        assert completion is not None
        try:
            return_code = self._proc.wait()
            exit_ts = time.time()

            for reader in self._readers:
                self._wait_for_reader(reader, exit_ts)

            start_time = self._handle.start_time or time.time()
            completion.set_result(
                CompileResult(
                    ok=(return_code == 0),
                    return_code=return_code,
                    command=self._handle.command,
                    duration=time.time() - start_time,
                )
            )
        except Exception as e:
            logger.exception("Watcher thread error for PID %d", self._proc.pid)
            if not completion.done():
                completion.set_exception(e)


def _classify_launch_error(e: OSError) -> str:
    if isinstance(e, (FileNotFoundError, PermissionError)):
        return CompilerLaunchError.LAUNCH_FAILURE
    if e.errno in _LAUNCH_FAILURE_ERRNOS:
        return CompilerLaunchError.LAUNCH_FAILURE
    return CompilerLaunchError.RESOURCE_EXHAUSTION


def _fail_launch(handle: CompileHandle, e: OSError) -> None:
    kind = _classify_launch_error(e)
    if kind == CompilerLaunchError.LAUNCH_FAILURE:
        message = (
            f"Error in run_compile, compiler could not be started: {e}\n"
            f"Command: {handle.command}\n"
        )
    else:
        message = (
            "Error in run_compile, cannot create pipe or process "
            f"- perhaps insufficient memory? ({e})\n"
        )

    if handle.logger is not None:
        handle.logger.log_error(message)

    handle.pid = 0
    handle.state = CompileState.FAILED
    handle.result = CompileResult(
        ok=False,
        return_code=None,
        command=handle.command,
        error=f"{kind}: {e}",
    )
    handle.launch_error = CompilerLaunchError(
        message.strip(), kind=kind, command=handle.command
    )
    if handle.completion is not None:
        handle.completion.set_exception(handle.launch_error)


def run_compile(
    request: CompileRequest,
    handle: CompileHandle,
    settings: ToolchainSettings | None = None,
) -> None:
    """
    Start compiling a request and return immediately.

    Progress is observed by polling get_is_complete(handle). Launch failures
    are reported once through the handle's logger and leave the handle FAILED.

    Raises:
        CompileInProgressError: If the handle still owns a running compile.
    """
    settings = settings or ToolchainSettings()
    if handle.is_running:
        raise CompileInProgressError(handle.pid)

    command_line = build_command_line(request, settings)
    handle.arm(command_line)

    if handle.logger is not None:
        handle.logger.log_info(f"{command_line}\n\n")

    command: str | list[str]
    if settings.use_shell:
        command = command_line
    else:
        command = build_compile_args(request, settings)

    try:
        proc = subprocess.Popen(
            command,
            shell=settings.use_shell,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if settings.merge_stderr else subprocess.PIPE,
            bufsize=0,
        )
    except OSError as e:
        _fail_launch(handle, e)
        return

    handle.proc = proc
    pipes: list[tuple[str, IO[bytes] | None]] = [(OUTPUT_STREAM, proc.stdout)]
    if not settings.merge_stderr:
        pipes.append((STDERR_STREAM, proc.stderr))

    readers: list[ProcessOutputReader] = []
    for stream, pipe in pipes:
        assert pipe is not None
        reader = ProcessOutputReader(
            pipe,
            stream,
            settings.read_chunk_size,
            on_output=handle.output_queue.put,
        )
        handle.reader_threads.append(
            reader.start(name=f"CompileReader-{stream}-{proc.pid}")
        )
        readers.append(reader)

    ProcessWatcher(handle, proc, readers, settings.drain_grace).start()

    handle.pid = proc.pid
    handle.state = CompileState.RUNNING
    logger.debug("Launched compile PID %d: %s", proc.pid, command_line)
