from __future__ import annotations

import os
import platform
import shutil
import sys

from backticks.runner import Runner
from backticks.runtime.pty_posix import pty_available
from backticks.runtime.spawner import SpawnError
from backticks.settings import RunnerSettings

# Checks that only degrade the experience; everything else is a hard failure.
WARNING_CHECKS = {"terminal-stdin", "pseudo-terminal"}


def _binary_exists(name: str) -> bool:
    return shutil.which(name) is not None


def _stdin_is_tty() -> bool:
    try:
        return os.isatty(sys.stdin.fileno())
    except (AttributeError, OSError, ValueError):
        return False


def _pty_check() -> tuple[str, bool, str]:
    if pty_available():
        return "pseudo-terminal", True, "pty streams available"
    return (
        "pseudo-terminal",
        False,
        f"pty streams unavailable on {platform.system()}; all streams fall back to pipes",
    )


def _smoke_check() -> tuple[str, bool, str]:
    runner = Runner(RunnerSettings(buffered=True))
    try:
        command = runner.spawn(["true"] if _binary_exists("true") else [sys.executable, "-c", ""])
    except SpawnError as exc:
        return "spawn-smoke", False, str(exc)
    with command:
        finished = command.wait_until_exit(timeout=10.0)
    if finished is None or command.status is None:
        return "spawn-smoke", False, f"pid={command.pid} did not exit within 10s"
    if not command.status.success:
        return "spawn-smoke", False, f"pid={command.pid} exited with {command.status.code}"
    return "spawn-smoke", True, f"pid={command.pid} exited cleanly"


def run_doctor_checks() -> list[tuple[str, bool, str]]:
    checks: list[tuple[str, bool, str]] = [_pty_check()]

    if _binary_exists("sh"):
        checks.append(("shell", True, "sh found in PATH"))
    else:
        checks.append(("shell", False, "sh not found in PATH; --shell needs an explicit shell"))

    if _stdin_is_tty():
        checks.append(("terminal-stdin", True, "stdin is a terminal"))
    else:
        checks.append(
            ("terminal-stdin", False, "stdin is not a terminal; interactive input is not a tty")
        )

    checks.append(_smoke_check())
    return checks
