from __future__ import annotations

import logging
import os
from pathlib import Path

import click
from pydantic import ValidationError

from backticks.command import Command
from backticks.doctor import WARNING_CHECKS, run_doctor_checks
from backticks.runner import Runner
from backticks.runtime.events import EventRecorder
from backticks.runtime.shells import build_shell_command
from backticks.runtime.spawner import SpawnError
from backticks.settings import RunnerSettings, format_validation_error, load_runner_settings

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _env_interactive() -> bool:
    return os.environ.get("BACKTICKS_INTERACTIVE", "").strip().lower() in {"1", "true", "yes"}


def _resolve_settings(
    *,
    config_path: Path | None,
    interactive: bool | None,
    buffered: tuple[str, ...],
    chdir: Path | None,
    timeout: str | None,
) -> RunnerSettings:
    try:
        base = load_runner_settings(config_path) if config_path is not None else RunnerSettings()
    except ValidationError as exc:
        raise click.ClickException(
            f"Invalid runner config {config_path}:\n{format_validation_error(exc)}"
        ) from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    data = base.model_dump(exclude_none=True)
    if interactive is not None:
        data["interactive"] = interactive
    elif "interactive" not in base.model_fields_set and _env_interactive():
        data["interactive"] = True
    if buffered:
        names = {value.lower() for value in buffered}
        for name in ("stdin", "stdout", "stderr"):
            data.pop(name, None)
        data["buffered"] = True if "all" in names else sorted(names)
    if chdir is not None:
        data["chdir"] = chdir
    if timeout is not None:
        data["timeout"] = timeout

    try:
        return RunnerSettings.model_validate(data)
    except ValidationError as exc:
        raise click.ClickException(format_validation_error(exc)) from exc


def _resolve_argv(argv: tuple[str, ...], shell: str | None) -> list[str]:
    if shell is None:
        return list(argv)
    if len(argv) != 1:
        raise click.ClickException("--shell expects the whole command as a single argument")
    try:
        return build_shell_command(argv[0], shell)
    except SpawnError as exc:
        raise click.ClickException(str(exc)) from exc


def _emit_captured(command: Command) -> None:
    if command.interactive:
        # Already echoed live while pumping.
        return
    if command.captured_output:
        click.echo(command.captured_output, nl=False)
    if command.captured_error:
        click.echo(command.captured_error, nl=False, err=True)


@click.group(help="backticks: run commands with captured, tappable stdio over ptys or pipes.")
def app() -> None:
    pass


@app.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("argv", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option(
    "interactive",
    "--interactive/--no-interactive",
    default=None,
    help="Tie the command to this terminal: echo its output and forward input.",
)
@click.option(
    "buffered",
    "--buffered",
    type=click.Choice(["stdin", "stdout", "stderr", "all"], case_sensitive=False),
    multiple=True,
    help="Use a pipe instead of a pty for this stream. Repeatable.",
)
@click.option(
    "chdir",
    "--chdir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
)
@click.option("timeout", "--timeout", type=str, default=None, help="Duration such as 500ms or 5s.")
@click.option(
    "config_path",
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML runner settings.",
)
@click.option("shell", "--shell", type=str, default=None, help="Run ARGV through this shell.")
@click.option(
    "events_path",
    "--events",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Record every I/O chunk to this JSONL file.",
)
@click.option("verbose", "-v", "--verbose", is_flag=True, default=False)
def run(
    argv: tuple[str, ...],
    interactive: bool | None,
    buffered: tuple[str, ...],
    chdir: Path | None,
    timeout: str | None,
    config_path: Path | None,
    shell: str | None,
    events_path: Path | None,
    verbose: bool,
) -> None:
    _configure_logging(verbose)
    settings = _resolve_settings(
        config_path=config_path,
        interactive=interactive,
        buffered=buffered,
        chdir=chdir,
        timeout=timeout,
    )
    words = _resolve_argv(argv, shell)

    try:
        command = Runner(settings).spawn(words)
    except SpawnError as exc:
        raise click.ClickException(str(exc)) from exc

    with command:
        if events_path is not None:
            command.register_tap(EventRecorder(events_path))
        finished = command.wait_until_exit(settings.timeout_seconds)

    _emit_captured(command)
    if finished is None or command.status is None:
        logger.debug("pid=%s still running after %s", command.pid, settings.timeout)
        click.echo("STATUS=timeout", err=True)
        raise SystemExit(TIMEOUT_EXIT_CODE)

    exit_code = command.status.shell_code()
    if exit_code != 0:
        raise SystemExit(exit_code)


@app.command("doctor")
def doctor() -> None:
    has_failures = False
    for name, ok, message in run_doctor_checks():
        if ok:
            status = "PASS"
        elif name in WARNING_CHECKS:
            status = "WARN"
        else:
            status = "FAIL"
        click.echo(f"{status} {name}: {message}")
        has_failures = has_failures or (status == "FAIL")

    if has_failures:
        raise SystemExit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
