# model.py
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union


class OperatingSystem(str, Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"

    @classmethod
    def current(cls, platform: str | None = None) -> Optional[OperatingSystem]:
        """Map sys.platform onto the OS names scripts can target (None if unknown)."""
        p = (platform or sys.platform).lower()
        if p.startswith("win") or p == "cygwin":
            return cls.WINDOWS
        if p.startswith("linux"):
            return cls.LINUX
        if p == "darwin":
            return cls.MACOS
        return None


@dataclass(frozen=True)
class CommandOptions:
    interactive: bool = False
    os: Optional[OperatingSystem] = None
    proceed_on_failure: bool = False
    delay_ms: Optional[int] = None
    fallback: Tuple[CommandSpec, ...] = ()


@dataclass(frozen=True)
class CommandSpec:
    """A single command template plus its execution policy."""
    template: str
    description: Optional[str] = None
    capture: Optional[str] = None
    options: CommandOptions = field(default_factory=CommandOptions)

    @property
    def label(self) -> str:
        return self.description or self.template


@dataclass(frozen=True)
class Single:
    command: CommandSpec


@dataclass(frozen=True)
class Parallel:
    steps: Tuple[Step, ...]


Step = Union[Single, Parallel]


@dataclass(frozen=True)
class Secret:
    """A placeholder name bound from an environment variable at script entry."""
    name: str
    env_var: str


@dataclass(frozen=True)
class ScriptDefinition:
    """
    A loaded script: ordered steps + declared params/secrets.

    Immutable once loaded; `source` is the file it came from (None when built
    in code, e.g. in tests).
    """
    name: str
    commands: Tuple[Step, ...] = ()
    description: Optional[str] = None
    params: Tuple[str, ...] = ()
    secrets: Tuple[Secret, ...] = ()
    source: Optional[Path] = None


class StepOutcome(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED_FATAL = "failed"
    FAILED_TOLERATED = "failed(tolerated)"

    @property
    def is_fatal(self) -> bool:
        return self is StepOutcome.FAILED_FATAL


@dataclass(frozen=True)
class StepFailure:
    """Record of a step that still failed after the retry protocol."""
    script: str
    command: str
    error: str
    fatal: bool


@dataclass(frozen=True)
class RunOutcome:
    """
    Result of walking a step sequence.

    aborted_at is None when every step ran (Completed), otherwise the index of
    the step (or parallel group) that failed fatally.
    """
    aborted_at: Optional[int] = None

    @property
    def completed(self) -> bool:
        return self.aborted_at is None
