from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Literal

from backticks.runtime.pty_posix import open_pty

StreamName = Literal["stdin", "stdout", "stderr"]

STREAM_NAMES: tuple[StreamName, ...] = ("stdin", "stdout", "stderr")


class StreamMode(str, enum.Enum):
    PTY = "pty"
    PIPE = "pipe"


@dataclass(slots=True)
class StreamPair:
    name: StreamName
    mode: StreamMode
    parent_fd: int
    child_fd: int


def open_pipe() -> tuple[int, int]:
    return os.pipe()


def open_stream_pair(name: StreamName, mode: StreamMode) -> StreamPair:
    """Allocate a connected pair for one standard stream.

    The stdin pair is written by the parent and read by the child. The stdout
    and stderr pairs go the other way.
    """
    if mode is StreamMode.PTY:
        parent_fd, child_fd = open_pty()
        return StreamPair(name=name, mode=mode, parent_fd=parent_fd, child_fd=child_fd)

    read_fd, write_fd = open_pipe()
    if name == "stdin":
        return StreamPair(name=name, mode=mode, parent_fd=write_fd, child_fd=read_fd)
    return StreamPair(name=name, mode=mode, parent_fd=read_fd, child_fd=write_fd)


def close_quietly(fd: int | None) -> None:
    if fd is None:
        return
    try:
        os.close(fd)
    except OSError:
        pass
