"""Stream allocation and process spawning for the command runner."""

from backticks.runtime.spawner import SpawnError, spawn_process
from backticks.runtime.streams import StreamMode, StreamPair, open_stream_pair

__all__ = [
    "SpawnError",
    "StreamMode",
    "StreamPair",
    "open_stream_pair",
    "spawn_process",
]
