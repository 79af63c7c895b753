from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from backticks.command import Command
from backticks.getopt import parameters
from backticks.runtime.pty_posix import pty_available
from backticks.runtime.spawner import SpawnError, spawn_process
from backticks.runtime.streams import (
    STREAM_NAMES,
    StreamName,
    StreamPair,
    close_quietly,
    open_stream_pair,
)
from backticks.settings import RunnerSettings, resolve_plumbing

logger = logging.getLogger(__name__)

Translator = Callable[..., list[str]]


def _release(pairs: list[StreamPair]) -> None:
    for pair in pairs:
        close_quietly(pair.parent_fd)
        close_quietly(pair.child_fd)


class Runner:
    """Spawns commands with their stdio on ptys or pipes.

    By default every stream is a pseudo-terminal, so the child does not
    block-buffer its output. Streams listed in ``buffered`` use a plain pipe
    instead. An interactive runner ties the child to this process's terminal
    and always puts stdin and stdout on a pty. Output is still captured.
    """

    def __init__(
        self,
        settings: RunnerSettings | None = None,
        *,
        translator: Translator = parameters,
    ) -> None:
        self.settings = settings if settings is not None else RunnerSettings()
        self.translator = translator

    @property
    def interactive(self) -> bool:
        return self.settings.interactive

    @interactive.setter
    def interactive(self, value: bool) -> None:
        self.settings.interactive = bool(value)

    @property
    def chdir(self) -> Path | None:
        return self.settings.chdir

    @chdir.setter
    def chdir(self, value: Path | str | None) -> None:
        self.settings.chdir = Path(value) if value is not None else None

    @property
    def buffered(self) -> list[StreamName]:
        return self.settings.buffered

    @buffered.setter
    def buffered(self, value: bool | Sequence[str] | None) -> None:
        data = self.settings.model_dump(exclude=set(STREAM_NAMES))
        self.settings = RunnerSettings.model_validate({**data, "buffered": value})

    def run(self, *sugar: Any) -> Command:
        """Run a command given as words, word lists and option mappings.

        ``runner.run("docker-compose", {"file": "joe.yml"}, "up", {"d": True}, "mysvc")``
        """
        return self.spawn(self.translator(*sugar))

    def spawn(self, argv: Sequence[str]) -> Command:
        words = [str(word) for word in argv]
        if not words:
            raise SpawnError("Cannot start process: empty argument vector")
        plumbing = resolve_plumbing(self.settings, pty_supported=pty_available())
        cwd = self.settings.chdir or Path.cwd()

        pairs: list[StreamPair] = []
        try:
            for name in STREAM_NAMES:
                pairs.append(open_stream_pair(name, plumbing[name]))
            stdin, stdout, stderr = pairs
            process = spawn_process(
                words,
                stdin=stdin.child_fd,
                stdout=stdout.child_fd,
                stderr=stderr.child_fd,
                cwd=cwd,
            )
        except OSError as exc:
            _release(pairs)
            raise SpawnError(f"Failed to allocate stdio for {words[0]!r}: {exc}") from exc
        except BaseException:
            _release(pairs)
            raise

        for pair in pairs:
            close_quietly(pair.child_fd)

        parent_stdin: int | None = stdin.parent_fd
        if not self.settings.interactive:
            close_quietly(parent_stdin)
            parent_stdin = None

        logger.debug(
            "Spawned pid=%s plumbing=%s interactive=%s",
            process.pid,
            {name: mode.value for name, mode in plumbing.items()},
            self.settings.interactive,
        )
        return Command(
            process,
            parent_stdin,
            stdout.parent_fd,
            stderr.parent_fd,
            interactive=self.settings.interactive,
        )
