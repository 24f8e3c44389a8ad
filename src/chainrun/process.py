# process.py
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol

from .errors import CommandSpawnFailure
from .model import OperatingSystem


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProcessSpawner(Protocol):
    def spawn(self, command_line: str, *, interactive: bool = False) -> ProcessResult: ...


def shell_argv(command_line: str, os_name: Optional[OperatingSystem]) -> List[str]:
    """Wrap a command line in the platform shell."""
    if os_name is OperatingSystem.WINDOWS:
        return ["powershell", "-Command", command_line]
    return ["sh", "-c", command_line]


class ShellSpawner:
    """Runs command lines through the platform shell and waits for exit."""

    def __init__(self, os_name: Optional[OperatingSystem] = None):
        self.os_name = os_name if os_name is not None else OperatingSystem.current()

    def spawn(self, command_line: str, *, interactive: bool = False) -> ProcessResult:
        argv = shell_argv(command_line, self.os_name)
        try:
            if interactive:
                # inherit the terminal: nothing to capture
                proc = subprocess.run(argv)
                return ProcessResult(exit_code=proc.returncode)

            proc = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as e:
            # ValueError: the line cannot be passed to exec (embedded NUL)
            raise CommandSpawnFailure(
                message=f"Could not start shell for command: {e}",
                command=command_line,
            ) from e

        return ProcessResult(
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
