# context.py
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from .model import OperatingSystem
from .process import ProcessSpawner, ShellSpawner


class EnvironmentReader:
    """Read-only view over a snapshot of environment variables."""

    def __init__(self, environ: Mapping[str, str]):
        self._environ = MappingProxyType(dict(environ))

    def get(self, name: str) -> Optional[str]:
        return self._environ.get(name)

    @classmethod
    def snapshot(cls) -> EnvironmentReader:
        return cls(os.environ)


@dataclass(frozen=True)
class RunContext:
    """
    Process-wide inputs captured once at run entry.

    Threaded through ScriptRunner -> GroupScheduler -> Executor so nothing
    below the runner reads os.environ / sys.platform directly.
    """
    platform: Optional[OperatingSystem]
    env: EnvironmentReader
    spawner: ProcessSpawner
    sleep: Callable[[float], None] = field(default=time.sleep)

    @classmethod
    def capture(
        cls,
        *,
        spawner: Optional[ProcessSpawner] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> RunContext:
        platform = OperatingSystem.current()
        return cls(
            platform=platform,
            env=EnvironmentReader.snapshot(),
            spawner=spawner or ShellSpawner(platform),
            sleep=sleep,
        )
