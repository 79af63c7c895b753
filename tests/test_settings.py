from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from backticks.runtime.streams import StreamMode
from backticks.settings import (
    RunnerSettings,
    duration_to_seconds,
    format_validation_error,
    load_runner_settings,
    resolve_plumbing,
)


def test_defaults_put_every_stream_on_a_pty() -> None:
    settings = RunnerSettings()

    assert settings.buffered == []
    assert settings.interactive is False
    assert settings.chdir is None
    assert settings.timeout_seconds is None


def test_buffered_shortcut_accepts_booleans_and_lists() -> None:
    assert RunnerSettings(buffered=True).buffered == ["stdin", "stdout", "stderr"]
    assert RunnerSettings(buffered=False).buffered == []
    assert RunnerSettings(buffered=["stderr"]).buffered == ["stderr"]
    assert RunnerSettings(buffered="stdout").stdout is StreamMode.PIPE


def test_explicit_stream_mode_wins_over_buffered() -> None:
    settings = RunnerSettings.model_validate({"buffered": True, "stdout": "pty"})

    assert settings.stdout is StreamMode.PTY
    assert settings.stderr is StreamMode.PIPE


def test_unknown_buffered_stream_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        RunnerSettings(buffered=["stdlog"])

    assert "stdlog" in format_validation_error(excinfo.value)


def test_timeout_must_be_a_duration() -> None:
    assert RunnerSettings(timeout="250ms").timeout_seconds == pytest.approx(0.25)
    assert RunnerSettings(timeout="2s").timeout_seconds == pytest.approx(2.0)

    with pytest.raises(ValidationError):
        RunnerSettings(timeout="soon")


def test_duration_to_seconds_rejects_unknown_units() -> None:
    assert duration_to_seconds("1500ms") == pytest.approx(1.5)
    with pytest.raises(ValueError):
        duration_to_seconds("3m")


def test_resolve_plumbing_forces_pty_for_interactive_input_and_output() -> None:
    settings = RunnerSettings(buffered=True, interactive=True)

    plumbing = resolve_plumbing(settings, pty_supported=True)

    assert plumbing == {
        "stdin": StreamMode.PTY,
        "stdout": StreamMode.PTY,
        "stderr": StreamMode.PIPE,
    }


def test_resolve_plumbing_without_pty_support_uses_pipes() -> None:
    plumbing = resolve_plumbing(RunnerSettings(), pty_supported=False)

    assert set(plumbing.values()) == {StreamMode.PIPE}


def test_load_runner_settings_from_yaml(tmp_path: Path) -> None:
    config = tmp_path / "runner.yaml"
    config.write_text(
        """
buffered: [stdin, stderr]
interactive: false
chdir: /tmp
timeout: 5s
""",
        encoding="utf-8",
    )

    settings = load_runner_settings(config)

    assert settings.buffered == ["stdin", "stderr"]
    assert settings.chdir == Path("/tmp")
    assert settings.timeout_seconds == pytest.approx(5.0)


def test_load_runner_settings_accepts_empty_file(tmp_path: Path) -> None:
    config = tmp_path / "runner.yaml"
    config.write_text("", encoding="utf-8")

    assert load_runner_settings(config) == RunnerSettings()


def test_load_runner_settings_requires_a_mapping(tmp_path: Path) -> None:
    config = tmp_path / "runner.yaml"
    config.write_text("- stdin\n- stdout\n", encoding="utf-8")

    with pytest.raises(ValueError, match="YAML object"):
        load_runner_settings(config)
