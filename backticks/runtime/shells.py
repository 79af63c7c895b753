from __future__ import annotations

import platform
import shutil

from backticks.runtime.spawner import SpawnError


def build_shell_command(command: str, shell: str = "auto") -> list[str]:
    # The pump loop selects on pipe and pty descriptors, which Windows cannot do.
    if platform.system() == "Windows":
        raise SpawnError("Running through a shell is only supported on POSIX systems")

    target = shell.lower()
    if target in {"bash", "zsh", "fish", "sh", "dash"}:
        return [target, "-c", command]
    if target != "auto":
        raise SpawnError(f"Unsupported shell '{shell}'")

    for candidate in ("sh", "bash"):
        if shutil.which(candidate):
            return [candidate, "-c", command]
    raise SpawnError("No supported shell found (expected sh or bash)")
