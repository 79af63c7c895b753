from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path


@dataclass(slots=True)
class IoEvent:
    stream: str
    size: int
    text: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)

    @classmethod
    def from_chunk(cls, stream: str, data: bytes | None) -> IoEvent:
        if data is None:
            return cls(stream=stream, size=0)
        return cls(stream=stream, size=len(data), text=data.decode("utf-8", errors="replace"))


def append_event(path: Path, event: IoEvent) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(event.to_json())
        handle.write("\n")


class EventRecorder:
    """Tap callback that logs every chunk to a JSONL file and passes it through."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __call__(self, stream: str, data: bytes | None) -> bytes | None:
        append_event(self.path, IoEvent.from_chunk(stream, data))
        return data
