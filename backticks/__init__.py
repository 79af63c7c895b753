"""Run commands, capture their output and talk to them through ptys or pipes."""

from __future__ import annotations

from typing import Any

from backticks.command import Command, ExitStatus, TapConflictError
from backticks.runner import Runner
from backticks.runtime.spawner import SpawnError
from backticks.settings import RunnerSettings

__version__ = "0.1.0"

__all__ = [
    "Command",
    "ExitStatus",
    "Runner",
    "RunnerSettings",
    "SpawnError",
    "TapConflictError",
    "new",
    "run",
    "system",
]


def new(*sugar: Any) -> Command:
    return Runner().run(*sugar)


def run(*sugar: Any) -> bytes:
    """Run a command to completion and return everything it wrote to stdout."""
    with new(*sugar) as command:
        command.wait_until_exit()
        return command.captured_output


def system(*sugar: Any) -> bool:
    with new(*sugar) as command:
        return command.wait_and_check_success()
