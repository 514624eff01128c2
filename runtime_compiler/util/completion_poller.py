"""Non-blocking completion check for a launched compile."""

import logging
import queue

from runtime_compiler.compile_handle import (
    STDERR_STREAM,
    CompileHandle,
    CompileResult,
    CompileState,
)
from runtime_compiler.logger import CompilerLogger


logger = logging.getLogger(__name__)

# Exit statuses /bin/sh uses when the command itself cannot be run
_SHELL_CANNOT_EXECUTE = 126
_SHELL_NOT_FOUND = 127


def _forward(log: CompilerLogger | None, stream: str, text: str) -> None:
    if log is None or not text:
        return
    if stream == STDERR_STREAM:
        log.log_error(text)
    else:
        log.log_info(text)


def drain_output(handle: CompileHandle) -> int:
    """
    Forward every chunk currently queued on the handle to its logger.

    Never waits for more output. Returns the number of bytes forwarded.
    """
    forwarded = 0
    while True:
        try:
            chunk = handle.output_queue.get_nowait()
        except queue.Empty:
            break
        forwarded += len(chunk.data)
        _forward(handle.logger, chunk.stream, handle.decode(chunk))
    return forwarded


def _report_result(handle: CompileHandle, result: CompileResult) -> None:
    if handle.logger is None or result.ok:
        return
    if result.return_code in (_SHELL_CANNOT_EXECUTE, _SHELL_NOT_FOUND):
        handle.logger.log_error(
            f"Compiler could not be started (exit code {result.return_code}): "
            f"{result.command}\n"
        )
    else:
        handle.logger.log_error(
            f"Compile failed with exit code {result.return_code}\n"
        )


def _flush_decoders(handle: CompileHandle) -> None:
    for stream, text in handle.flush_decoders().items():
        _forward(handle.logger, stream, text)


def _drain_late_output(handle: CompileHandle) -> None:
    """
    Forward output a descendant of the exited compiler wrote after completion.

    Runs until every reader thread has seen EOF, then releases the channel.
    """
    readers_alive = any(thread.is_alive() for thread in handle.reader_threads)
    drain_output(handle)
    if readers_alive:
        return
    _flush_decoders(handle)
    handle.release_channel()
    handle.draining_late_output = False


def get_is_complete(handle: CompileHandle) -> bool:
    """
    Check whether the compile owned by a handle has finished.

    Buffered output is forwarded to the handle's logger first. When exit is
    observed the handle is finalised: the flag is set, the pid cleared and the
    channel released. If a descendant of the compiler still holds the output
    pipe at that point, later calls keep forwarding what it writes until EOF.
    Safe to call repeatedly from any single thread.
    """
    if handle.is_complete:
        if handle.draining_late_output:
            _drain_late_output(handle)
        return True

    if handle.pid == 0 or handle.state is not CompileState.RUNNING:
        # Never launched, or the launch failed
        return handle.is_complete

    drain_output(handle)

    completion = handle.completion
    if completion is None or not completion.done():
        return handle.is_complete

    # Readers have finished (or given up); pick up their last chunks. Liveness
    # is sampled first so nothing a reader queued before exiting is missed.
    readers_alive = any(thread.is_alive() for thread in handle.reader_threads)
    drain_output(handle)
    if not readers_alive:
        _flush_decoders(handle)

    error = completion.exception()
    if error is not None:
        result = CompileResult(
            ok=False, return_code=None, command=handle.command, error=str(error)
        )
        if handle.logger is not None:
            handle.logger.log_error(f"Lost track of compile process: {error}\n")
    else:
        result = completion.result()
        _report_result(handle, result)

    handle.result = result
    handle.is_complete = True
    handle.pid = 0
    handle.state = CompileState.COMPLETE
    handle.draining_late_output = readers_alive
    handle.release_channel()
    logger.debug(
        "Compile finished with exit code %s after %.2fs",
        result.return_code,
        result.duration,
    )
    return handle.is_complete
