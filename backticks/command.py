"""Running-process handle: capture, tap and proxy a child's standard streams."""

from __future__ import annotations

import logging
import os
import select
import signal
import subprocess
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

from backticks.runtime.streams import StreamName, close_quietly

logger = logging.getLogger(__name__)

# Number of bytes read from any stream in one go.
CHUNK = 1024
# Longest select while only the invoking terminal is watched, so an exit is noticed.
POLL_INTERVAL = 0.1
# Most reads after exit; a grandchild may hold the stream open and keep writing.
DRAIN_LIMIT = 64

TapCallback = Callable[[StreamName, bytes | None], bytes | None]


class TapConflictError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class ExitStatus:
    code: int
    success: bool

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        return cls(code=returncode, success=returncode == 0)

    @property
    def signal(self) -> int | None:
        return -self.code if self.code < 0 else None

    def shell_code(self) -> int:
        """Exit code as a shell reports it: 128+N for death by signal N."""
        if self.signal is not None:
            return 128 + self.signal
        return self.code


@dataclass(slots=True)
class Terminal:
    """The invoking process's own streams, bridged to the child when interactive."""

    stdin_fd: int | None
    stdout: BinaryIO
    stderr: BinaryIO

    @classmethod
    def current(cls) -> Terminal:
        try:
            stdin_fd: int | None = sys.stdin.fileno()
        except (AttributeError, OSError, ValueError):
            stdin_fd = None
        return cls(stdin_fd=stdin_fd, stdout=sys.stdout.buffer, stderr=sys.stderr.buffer)


class Command:
    """A running child process whose stdio this object owns.

    ``Runner.spawn`` hands over the parent-side descriptors. The caller then
    drives I/O with :meth:`pump` or :meth:`wait_until_exit`. Each call appends
    whatever the child produced to the capture buffers. An interactive command
    also echoes output to the invoking terminal and forwards the terminal's
    input to the child.

    Once :attr:`status` is set the command is finished. No further I/O is done
    and the status never changes.
    """

    def __init__(
        self,
        process: subprocess.Popen[bytes],
        stdin: int | None,
        stdout: int | None,
        stderr: int | None,
        *,
        interactive: bool = False,
        terminal: Terminal | None = None,
    ) -> None:
        self._process = process
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self._interactive = bool(interactive)
        if terminal is None and self._interactive:
            terminal = Terminal.current()
        self._terminal = terminal
        self._own_stdin_open = (
            self._interactive and terminal is not None and terminal.stdin_fd is not None
        )
        self._tap: TapCallback | None = None
        self._status: ExitStatus | None = None
        self._captured_input = bytearray()
        self._captured_output = bytearray()
        self._captured_error = bytearray()
        self._echo_enabled = True

    def __repr__(self) -> str:
        return f"<Command pid={self.pid} status={self._status}>"

    def __enter__(self) -> Command:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def status(self) -> ExitStatus | None:
        return self._status

    @property
    def interactive(self) -> bool:
        return self._interactive

    @property
    def captured_input(self) -> bytes:
        return bytes(self._captured_input)

    @property
    def captured_output(self) -> bytes:
        return bytes(self._captured_output)

    @property
    def captured_error(self) -> bytes:
        return bytes(self._captured_error)

    def has_exited(self) -> bool:
        return self._status is not None

    def wait_and_check_success(self) -> bool:
        self.wait_until_exit()
        if self._status is None:
            raise RuntimeError(f"pid={self.pid} has not exited")
        return self._status.success

    def register_tap(self, callback: TapCallback) -> None:
        """Install the single callback that sees every chunk of I/O.

        The callback receives the stream name and the fresh bytes, or ``None``
        when the user's input closes. It returns the bytes to keep, possibly
        transformed, or ``None`` to discard the chunk. Registering the same
        callback again is allowed. Registering a different one raises
        :class:`TapConflictError`.
        """
        if self._tap is not None and self._tap != callback:
            raise TapConflictError(f"Tap is already set ({self._tap!r}); cannot set twice")
        self._tap = callback

    def close(self) -> None:
        """Release every parent-side descriptor still held."""
        self._close_child_stdin()
        for name in ("stdout", "stderr"):
            self._close_stream(name)

    def wait_until_exit(self, timeout: float | None = None) -> Command | None:
        """Pump I/O until the child exits or ``timeout`` seconds pass.

        Returns ``self`` once the child has exited, or ``None`` if time ran out.
        A timed-out command keeps running and can be waited on again. With
        ``timeout=None`` there is no deadline.
        """
        if self._status is not None:
            return self

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = self._remaining(deadline)
            if not self._watched_fds():
                self._wait_process(remaining)
            elif self._child_output_open():
                self.pump(remaining)
            else:
                # Only own stdin is left; a child exit produces no readiness on it.
                self.pump(POLL_INTERVAL if remaining is None else min(remaining, POLL_INTERVAL))
            if self._reap(deadline):
                return self
            if deadline is not None and time.monotonic() >= deadline:
                return None

    def pump(self, timeout: float | None = None) -> bytes | None:
        """Wait for I/O readiness and move one chunk per ready stream.

        Returns the fresh stdout chunk after tapping, or ``None`` if this call
        saw no stdout data.
        """
        if self._status is not None:
            return None

        watched = self._watched_fds()
        if not watched:
            return None
        if timeout is not None:
            timeout = max(timeout, 0.0)

        try:
            ready, _, _ = select.select(watched, [], [], timeout)
        except KeyboardInterrupt:
            self._forward_interrupt()
            raise

        own_stdin = self._own_stdin_fd()
        if own_stdin is not None and own_stdin in ready:
            self._proxy_input(own_stdin)

        fresh_output = None
        if self._stdout is not None and self._stdout in ready:
            fresh_output = self._read_child("stdout")
        if self._stderr is not None and self._stderr in ready:
            self._read_child("stderr")
        return fresh_output

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0.0)

    def _own_stdin_fd(self) -> int | None:
        if not self._own_stdin_open or self._terminal is None:
            return None
        return self._terminal.stdin_fd

    def _child_output_open(self) -> bool:
        return self._stdout is not None or self._stderr is not None

    def _watched_fds(self) -> list[int]:
        return [fd for fd in (self._own_stdin_fd(), self._stdout, self._stderr) if fd is not None]

    def _apply_tap(self, stream: StreamName, data: bytes | None) -> bytes | None:
        if self._tap is None:
            return data
        return self._tap(stream, data)

    def _proxy_input(self, fd: int) -> None:
        try:
            data = os.read(fd, CHUNK)
        except OSError as exc:
            logger.debug("Reading own stdin failed, treating as closed: %s", exc)
            data = b""

        if not data:
            # Our own stdin is gone; pass the EOF on to the child.
            self._own_stdin_open = False
            self._close_child_stdin()
            self._apply_tap("stdin", None)
            return

        tapped = self._apply_tap("stdin", data)
        if tapped is None:
            return
        self._captured_input.extend(tapped)
        self._write_child_stdin(tapped)

    def _write_child_stdin(self, data: bytes) -> None:
        if self._stdin is None:
            return
        view = memoryview(data)
        try:
            while view:
                written = os.write(self._stdin, view)
                view = view[written:]
        except OSError as exc:
            logger.debug("Writing to pid=%s stdin failed, closing it: %s", self.pid, exc)
            self._close_child_stdin()

    def _read_child(self, stream: StreamName) -> bytes | None:
        fd = self._stdout if stream == "stdout" else self._stderr
        assert fd is not None
        try:
            data = os.read(fd, CHUNK)
        except OSError as exc:
            # Linux reports EIO on a pty once the child side is closed.
            logger.debug("Reading pid=%s %s failed, treating as closed: %s", self.pid, stream, exc)
            data = b""

        if not data:
            self._close_stream(stream)
            return None

        tapped = self._apply_tap(stream, data)
        if tapped is None:
            return None

        if stream == "stdout":
            self._captured_output.extend(tapped)
            if self._interactive and self._terminal is not None:
                self._echo(self._terminal.stdout, tapped)
        else:
            self._captured_error.extend(tapped)
            if self._interactive and self._terminal is not None:
                self._echo(self._terminal.stderr, tapped)
        return tapped

    def _echo(self, target: BinaryIO, data: bytes) -> None:
        if not self._echo_enabled:
            return
        try:
            target.write(data)
            target.flush()
        except OSError as exc:
            # Nobody reads our output any more (`| head`); capturing goes on.
            self._echo_enabled = False
            logger.debug("Stopped echoing output of pid=%s: %s", self.pid, exc)

    def _close_child_stdin(self) -> None:
        if self._stdin is None:
            return
        close_quietly(self._stdin)
        self._stdin = None
        logger.debug("Closed stdin of pid=%s", self.pid)

    def _close_stream(self, stream: StreamName) -> None:
        if stream == "stdout" and self._stdout is not None:
            close_quietly(self._stdout)
            self._stdout = None
        elif stream == "stderr" and self._stderr is not None:
            close_quietly(self._stderr)
            self._stderr = None
        else:
            return
        logger.debug("Closed %s of pid=%s", stream, self.pid)

    def _drain(self, deadline: float | None = None) -> None:
        for _ in range(DRAIN_LIMIT):
            if not self._child_output_open():
                return
            watched = [fd for fd in (self._stdout, self._stderr) if fd is not None]
            ready, _, _ = select.select(watched, [], [], 0)
            if not ready:
                return
            if self._stdout is not None and self._stdout in ready:
                self._read_child("stdout")
            if self._stderr is not None and self._stderr in ready:
                self._read_child("stderr")
            if deadline is not None and time.monotonic() >= deadline:
                return

    def _wait_process(self, timeout: float | None) -> None:
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            pass
        except KeyboardInterrupt:
            self._forward_interrupt()
            raise

    def _reap(self, deadline: float | None = None) -> bool:
        returncode = self._process.poll()
        if returncode is None:
            return False
        # Bytes written just before exit may still be sitting in the pipe or pty.
        self._drain(deadline)
        self._status = ExitStatus.from_returncode(returncode)
        logger.debug("pid=%s exited with %s", self.pid, returncode)
        return True

    def _forward_interrupt(self) -> None:
        if not self._interactive:
            return
        logger.debug("Forwarding SIGINT to pid=%s", self.pid)
        try:
            self._process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            pass
