from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


class SpawnError(RuntimeError):
    pass


def spawn_process(
    argv: Sequence[str],
    *,
    stdin: int,
    stdout: int,
    stderr: int,
    cwd: Path,
) -> subprocess.Popen[bytes]:
    if not argv:
        raise SpawnError("Cannot start process: empty argument vector")
    try:
        process = subprocess.Popen(  # noqa: S603
            list(argv),
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            cwd=cwd,
            close_fds=True,
        )
    except (OSError, ValueError) as exc:
        raise SpawnError(f"Failed to start process {argv[0]!r}: {exc}") from exc
    logger.debug("Started pid=%s argv=%s cwd=%s", process.pid, list(argv), cwd)
    return process
