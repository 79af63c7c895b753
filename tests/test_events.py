from __future__ import annotations

import json
from pathlib import Path

from backticks.runtime.events import EventRecorder, IoEvent


def test_event_recorder_logs_and_passes_chunks_through(tmp_path: Path) -> None:
    events_path = tmp_path / "logs" / "events.jsonl"
    recorder = EventRecorder(events_path)

    assert recorder("stdout", b"hello\n") == b"hello\n"
    assert recorder("stdin", None) is None

    lines = events_path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"stream": "stdout", "size": 6, "text": "hello\n"},
        {"stream": "stdin", "size": 0, "text": ""},
    ]


def test_io_event_replaces_undecodable_bytes() -> None:
    event = IoEvent.from_chunk("stderr", b"\xffok")

    assert event.size == 3
    assert event.text == "\ufffdok"
