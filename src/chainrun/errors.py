# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional

from . import settings


@dataclass(eq=False)
class ChainRunError(Exception):
    """
    Structured chainrun error with enough context for:
      - clean CLI output
      - mapping to a process exit status
      - debugging without full tracebacks
    """
    message: str
    script: Optional[str] = None
    details: dict = field(default_factory=dict)

    kind: ClassVar[str] = "ChainRunError"
    exit_status: ClassVar[int] = settings.EXIT_CONFIG_ERROR

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        if self.script:
            lines.append(f"script={self.script}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


# ----------------------------------------------------------------------
# Pre-run errors: nothing of the script has executed yet
# ----------------------------------------------------------------------

@dataclass(eq=False)
class UnknownScript(ChainRunError):
    kind: ClassVar[str] = "UnknownScript"


@dataclass(eq=False)
class MissingParam(ChainRunError):
    kind: ClassVar[str] = "MissingParam"


@dataclass(eq=False)
class MissingSecret(ChainRunError):
    kind: ClassVar[str] = "MissingSecret"


@dataclass(eq=False)
class CycleDetected(ChainRunError):
    kind: ClassVar[str] = "CycleDetected"


@dataclass(eq=False)
class ConfigParseError(ChainRunError):
    kind: ClassVar[str] = "ConfigParseError"


# ----------------------------------------------------------------------
# Step errors: recoverable via fallback/retry and proceed_on_failure
# ----------------------------------------------------------------------

@dataclass(eq=False)
class StepError(ChainRunError):
    kind: ClassVar[str] = "StepError"
    exit_status: ClassVar[int] = settings.EXIT_STEP_FAILED


@dataclass(eq=False)
class UnresolvedVariable(StepError):
    name: str = ""

    kind: ClassVar[str] = "UnresolvedVariable"

    def __post_init__(self) -> None:
        self.details.setdefault("variable", self.name)


@dataclass(eq=False)
class CommandSpawnFailure(StepError):
    command: str = ""

    kind: ClassVar[str] = "CommandSpawnFailure"

    def __post_init__(self) -> None:
        self.details.setdefault("cmd", self.command)


@dataclass(eq=False)
class CommandNonZeroExit(StepError):
    command: str = ""
    exit_code: int = 1
    stdout: str = ""
    stderr: str = ""

    kind: ClassVar[str] = "CommandNonZeroExit"

    def __post_init__(self) -> None:
        self.details.setdefault("cmd", self.command)
        self.details.setdefault("exit", self.exit_code)
        if self.stderr.strip():
            # last line is usually the useful one
            self.details.setdefault("stderr", self.stderr.strip().splitlines()[-1])
