# loader.py
from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import yaml

from . import settings
from .errors import ConfigParseError, UnknownScript
from .model import ScriptDefinition
from .schema import script_from_data, shortcuts_from_data


class ScriptSource(Protocol):
    """What ScriptRunner needs from wherever scripts come from."""

    def load(self, identifier: str) -> ScriptDefinition: ...

    def key(self, identifier: str) -> str: ...

    def shortcuts(self) -> Dict[str, str]: ...


def default_search_dirs() -> List[Path]:
    """Local scripts first, then the global ones (local shadows global)."""
    return [
        Path.cwd() / settings.SCRIPT_DIR_NAME,
        settings.HOME_DIR / settings.SCRIPT_DIR_NAME,
    ]


def read_document(path: Path) -> Any:
    """Decode a YAML / JSON / TOML file by extension."""
    ext = path.suffix.lstrip(".").lower()
    if ext not in settings.SUPPORTED_EXTENSIONS:
        raise ConfigParseError(
            message=f"Unsupported extension: .{ext}",
            details={"file": str(path), "supported": ", ".join(settings.SUPPORTED_EXTENSIONS)},
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigParseError(message=f"Could not read file: {e}", details={"file": str(path)}) from e

    try:
        if ext in ("yaml", "yml"):
            return yaml.safe_load(content)
        if ext == "json":
            return json.loads(content)
        return tomllib.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigParseError(
            message=f"Invalid {ext.upper()}: {e}",
            details={"file": str(path)},
        ) from e


def load_script_file(path: Union[str, Path]) -> ScriptDefinition:
    p = Path(path)
    return script_from_data(read_document(p), source=p.resolve())


@dataclass
class ScriptListing:
    """One script directory as shown by `chainrun list`."""
    directory: Path
    scripts: List[ScriptDefinition] = field(default_factory=list)
    errors: Dict[str, ConfigParseError] = field(default_factory=dict)
    shortcuts: Dict[str, str] = field(default_factory=dict)


class ConfigLoader:
    """
    Finds and loads script documents from an ordered list of directories.

    An identifier is either a path to an existing file, a file name inside one
    of the directories (`deploy.yaml`), or a bare name (`deploy`) tried with
    every supported extension.
    """

    def __init__(self, search_dirs: Optional[Sequence[Union[str, Path]]] = None):
        dirs = default_search_dirs() if search_dirs is None else search_dirs
        self.search_dirs: List[Path] = [Path(d).expanduser() for d in dirs]

    # ---- lookup ----
    def find(self, identifier: str) -> Optional[Path]:
        direct = Path(identifier).expanduser()
        if direct.is_file() and direct.suffix.lstrip(".").lower() in settings.SUPPORTED_EXTENSIONS:
            return direct.resolve()

        for d in self.search_dirs:
            for candidate in self._candidates(d, identifier):
                if candidate.is_file():
                    return candidate.resolve()
        return None

    @staticmethod
    def _candidates(directory: Path, identifier: str) -> List[Path]:
        ext = Path(identifier).suffix.lstrip(".").lower()
        if ext in settings.SUPPORTED_EXTENSIONS:
            return [directory / identifier]
        return [directory / f"{identifier}.{e}" for e in settings.SUPPORTED_EXTENSIONS]

    def key(self, identifier: str) -> str:
        """Stable identity for cycle detection (the resolved file when there is one)."""
        path = self.find(identifier)
        return str(path) if path is not None else identifier

    def load(self, identifier: str) -> ScriptDefinition:
        path = self.find(identifier)
        if path is None:
            raise UnknownScript(
                message=f"No script or shortcut found for '{identifier}'",
                details={"searched": ", ".join(str(d) for d in self.search_dirs)},
            )
        return load_script_file(path)

    # ---- shortcuts ----
    def shortcuts(self) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        # later dirs first so earlier (local) dirs win
        for d in reversed(self.search_dirs):
            merged.update(self._read_shortcuts(d))
        return merged

    @staticmethod
    def _read_shortcuts(directory: Path) -> Dict[str, str]:
        path = directory / settings.SHORTCUTS_FILE
        if not path.is_file():
            return {}
        return shortcuts_from_data(read_document(path), source=path)

    # ---- listing ----
    def discover(self) -> List[ScriptListing]:
        listings: List[ScriptListing] = []
        for d in self.search_dirs:
            if not d.is_dir():
                continue
            listing = ScriptListing(directory=d)
            for path in sorted(d.iterdir()):
                if not path.is_file() or path.name == settings.SHORTCUTS_FILE:
                    continue
                if path.suffix.lstrip(".").lower() not in settings.SUPPORTED_EXTENSIONS:
                    continue
                try:
                    listing.scripts.append(load_script_file(path))
                except ConfigParseError as e:
                    listing.errors[path.name] = e
            try:
                listing.shortcuts = self._read_shortcuts(d)
            except ConfigParseError as e:
                listing.errors[settings.SHORTCUTS_FILE] = e
            listings.append(listing)
        return listings


def add_shortcut(directory: Path, key: str, target: str) -> Optional[str]:
    """
    Point shortcut `key` at `target` in the directory's shortcuts file,
    keeping every other entry. Returns the previous target, if any.
    """
    path = directory / settings.SHORTCUTS_FILE
    current = shortcuts_from_data(read_document(path), source=path) if path.is_file() else {}
    previous = current.get(key)
    current[key] = target
    path.write_text(yaml.safe_dump({"shortcuts": current}, sort_keys=True), encoding="utf-8")
    return previous
