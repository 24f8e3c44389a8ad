from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
import yaml

from chainrun import settings
from chainrun.context import EnvironmentReader, RunContext
from chainrun.model import OperatingSystem
from chainrun.ui.console import Console, set_console

from fakes import FakeSpawner


@pytest.fixture(autouse=True)
def quiet_console() -> Console:
    console = Console(quiet=True)
    set_console(console)
    return console


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    # never read or write the real ~/.chainrun
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(settings, "HOME_DIR", home)
    return home


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_ctx(spawner: FakeSpawner, sleeps: List[float]) -> Callable[..., RunContext]:
    def _make(
        env: Optional[Dict[str, str]] = None,
        platform: Optional[OperatingSystem] = OperatingSystem.LINUX,
    ) -> RunContext:
        return RunContext(
            platform=platform,
            env=EnvironmentReader(env or {}),
            spawner=spawner,
            sleep=sleeps.append,
        )

    return _make


@pytest.fixture
def ctx(make_ctx) -> RunContext:
    return make_ctx()


@pytest.fixture
def script_dir(tmp_path: Path) -> Path:
    d = tmp_path / "project" / settings.SCRIPT_DIR_NAME
    d.mkdir(parents=True)
    return d


@pytest.fixture
def write_script(script_dir: Path) -> Callable[..., Path]:
    """Write a script document as YAML into the script dir."""

    def _write(name: str, commands: list, **fields) -> Path:
        path = script_dir / f"{name}.yaml"
        doc = {"name": name, **fields, "commands": commands}
        path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
        return path

    return _write
