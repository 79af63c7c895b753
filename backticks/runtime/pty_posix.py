from __future__ import annotations

import os
import platform


def pty_available() -> bool:
    return platform.system() != "Windows"


def open_pty() -> tuple[int, int]:
    """Open a pseudo-terminal and return ``(parent_fd, child_fd)``.

    The child side is switched to raw mode so the bytes a process writes reach
    the parent unchanged: no echo, no ``\\n`` to ``\\r\\n`` translation.
    """
    import pty
    import tty

    parent_fd, child_fd = pty.openpty()
    try:
        tty.setraw(child_fd)
    except BaseException:
        os.close(parent_fd)
        os.close(child_fd)
        raise
    return parent_fd, child_fd
