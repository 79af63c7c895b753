from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, field_validator, model_validator

from backticks.runtime.streams import STREAM_NAMES, StreamMode, StreamName

_DURATION_PATTERN = re.compile(r"^\d+(\.\d+)?(ms|s)$")


def duration_to_seconds(value: str) -> float:
    if value.endswith("ms"):
        return float(value[:-2]) / 1000.0
    if value.endswith("s"):
        return float(value[:-1])
    raise ValueError(f"Unsupported duration format: {value}")


def _buffered_streams(value: Any) -> list[str]:
    if value is True:
        return list(STREAM_NAMES)
    if value is False or value is None:
        return []
    if isinstance(value, str):
        value = [value]
    streams = [str(item).strip().lower() for item in value]
    unknown = sorted(set(streams) - set(STREAM_NAMES))
    if unknown:
        raise ValueError(f"Unknown stream name(s) in buffered: {', '.join(unknown)}")
    return streams


class RunnerSettings(BaseModel):
    stdin: StreamMode = StreamMode.PTY
    stdout: StreamMode = StreamMode.PTY
    stderr: StreamMode = StreamMode.PTY
    interactive: bool = False
    chdir: Path | None = None
    timeout: str | None = None

    @model_validator(mode="before")
    @classmethod
    def expand_buffered(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "buffered" not in data:
            return data
        expanded = dict(data)
        buffered = _buffered_streams(expanded.pop("buffered"))
        for name in STREAM_NAMES:
            expanded.setdefault(name, StreamMode.PIPE if name in buffered else StreamMode.PTY)
        return expanded

    @field_validator("timeout")
    @classmethod
    def validate_duration(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not _DURATION_PATTERN.match(value):
            raise ValueError("Duration must match '<number>ms' or '<number>s'")
        return value

    @property
    def buffered(self) -> list[StreamName]:
        return [name for name in STREAM_NAMES if self.mode_for(name) is StreamMode.PIPE]

    @property
    def timeout_seconds(self) -> float | None:
        if self.timeout is None:
            return None
        return duration_to_seconds(self.timeout)

    def mode_for(self, name: StreamName) -> StreamMode:
        return getattr(self, name)


def resolve_plumbing(
    settings: RunnerSettings, *, pty_supported: bool
) -> dict[StreamName, StreamMode]:
    """Decide once, per stream, whether the child gets a pty or a pipe."""
    if not pty_supported:
        return {name: StreamMode.PIPE for name in STREAM_NAMES}
    plumbing = {name: settings.mode_for(name) for name in STREAM_NAMES}
    if settings.interactive:
        # The user is typing and watching, so input and output must not block-buffer.
        plumbing["stdin"] = StreamMode.PTY
        plumbing["stdout"] = StreamMode.PTY
    return plumbing


def load_runner_settings(path: Path) -> RunnerSettings:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Runner settings at {path} must be a YAML object")
    return RunnerSettings.model_validate(raw)


def format_validation_error(exc: ValidationError) -> str:
    messages: list[str] = []
    for issue in exc.errors():
        loc = ".".join(str(part) for part in issue.get("loc", []))
        message = issue.get("msg", "validation error")
        messages.append(f"{loc}: {message}" if loc else message)
    return "\n".join(messages)
