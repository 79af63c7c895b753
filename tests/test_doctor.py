from __future__ import annotations

import platform

import pytest

import backticks.doctor as doctor


def test_doctor_reports_missing_shell_and_pty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(doctor, "pty_available", lambda: False)
    monkeypatch.setattr(doctor, "_binary_exists", lambda name: False)
    monkeypatch.setattr(doctor, "_stdin_is_tty", lambda: False)
    monkeypatch.setattr(doctor, "_smoke_check", lambda: ("spawn-smoke", True, "ok"))

    checks = {name: (ok, message) for name, ok, message in doctor.run_doctor_checks()}

    assert checks["pseudo-terminal"][0] is False
    assert "fall back to pipes" in checks["pseudo-terminal"][1]
    assert checks["shell"][0] is False
    assert checks["terminal-stdin"][0] is False
    assert checks["spawn-smoke"] == (True, "ok")


@pytest.mark.skipif(platform.system() == "Windows", reason="spawns a POSIX process")
def test_doctor_smoke_check_spawns_a_real_process() -> None:
    name, ok, message = doctor._smoke_check()

    assert name == "spawn-smoke"
    assert ok is True, message
    assert "exited cleanly" in message
