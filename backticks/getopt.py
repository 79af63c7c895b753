from __future__ import annotations

import shlex
from collections.abc import Mapping
from typing import Any


def _flag(key: object) -> tuple[str, bool]:
    name = str(key)
    if len(name) == 1:
        return f"-{name}", True
    return f"--{name.replace('_', '-')}", False


def options(mapping: Mapping[Any, Any]) -> list[str]:
    """Translate ``{key: value}`` pairs into getopt-style flags.

    >>> options({"X": "V", "file": "joe.yml", "d": True})
    ['-X', 'V', '--file=joe.yml', '-d']
    """
    argv: list[str] = []
    for key, value in mapping.items():
        flag, short = _flag(key)
        if value is True:
            argv.append(flag)
        elif value is False or value is None:
            continue
        elif isinstance(value, (list, tuple)):
            for item in value:
                argv.extend(_flag_value(flag, short, item))
        else:
            argv.extend(_flag_value(flag, short, value))
    return argv


def _flag_value(flag: str, short: bool, value: object) -> list[str]:
    if short:
        return [flag, str(value)]
    return [f"{flag}={value}"]


def _flatten(items: tuple[Any, ...] | list[Any]) -> list[str]:
    argv: list[str] = []
    for item in items:
        if isinstance(item, Mapping):
            argv.extend(options(item))
        elif isinstance(item, (list, tuple)):
            argv.extend(_flatten(item))
        else:
            argv.append(str(item))
    return argv


def parameters(*sugar: Any) -> list[str]:
    """Build an argument vector from words, word lists and option mappings.

    A lone string holding several words (``"ls -lR"``) is split shell-style.
    """
    if len(sugar) == 1 and isinstance(sugar[0], str):
        return shlex.split(sugar[0])
    return _flatten(sugar)
