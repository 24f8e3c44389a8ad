"""
Document schema for script files.

The same structure is accepted from YAML, JSON and TOML:

    name: deploy
    description: Build and ship
    params: [env]
    secrets:
      - name: token
        env_var: DEPLOY_TOKEN
    commands:
      - command: git rev-parse HEAD
        capture: sha
      - - command: make lint          # a nested list is a parallel group
        - command: make test
      - command: ./ship ${env} ${sha} ${token}
        options:
          proceed_on_failure: false
          fallback:
            - command: ./login

Raw documents are validated here and turned into the immutable model types
right away, so nothing downstream ever inspects a step's shape.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from .errors import ConfigParseError
from .model import (
    CommandOptions,
    CommandSpec,
    OperatingSystem,
    Parallel,
    ScriptDefinition,
    Secret,
    Single,
    Step,
)

_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-\.]*$")


def _check_name(value: Optional[str], what: str) -> Optional[str]:
    if value is not None and not _NAME.match(value):
        raise ValueError(f"invalid {what} {value!r} (use letters, digits, '_', '-', '.')")
    return value


class OptionsDoc(BaseModel):
    interactive: bool = False
    os: Optional[OperatingSystem] = Field(
        default=None, validation_alias=AliasChoices("os", "operating_system")
    )
    proceed_on_failure: bool = False
    delay_ms: Optional[int] = Field(default=None, ge=0)
    fallback: Optional[List[CommandDoc]] = Field(
        default=None, validation_alias=AliasChoices("fallback", "on_failure")
    )


class CommandDoc(BaseModel):
    command: str
    description: Optional[str] = None
    capture: Optional[str] = None
    options: Optional[OptionsDoc] = None

    @field_validator("capture")
    @classmethod
    def _capture_name(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v, "capture name")

    def to_spec(self) -> CommandSpec:
        opts = self.options or OptionsDoc()
        return CommandSpec(
            template=self.command,
            description=self.description,
            capture=self.capture,
            options=CommandOptions(
                interactive=opts.interactive,
                os=opts.os,
                proceed_on_failure=opts.proceed_on_failure,
                delay_ms=opts.delay_ms,
                fallback=tuple(fb.to_spec() for fb in (opts.fallback or [])),
            ),
        )


OptionsDoc.model_rebuild()


class SecretDoc(BaseModel):
    name: str
    env_var: str

    @field_validator("name")
    @classmethod
    def _secret_name(cls, v: str) -> str:
        return _check_name(v, "secret name")


class ScriptDoc(BaseModel):
    name: str
    description: Optional[str] = None
    params: Optional[List[str]] = None
    secrets: Optional[List[SecretDoc]] = None
    commands: List[Any]

    @field_validator("params")
    @classmethod
    def _param_names(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        for p in v or []:
            _check_name(p, "parameter name")
        if v and len(set(v)) != len(v):
            dupes = sorted({p for p in v if v.count(p) > 1})
            raise ValueError(f"duplicate parameter names: {dupes}")
        return v


class ShortcutsDoc(BaseModel):
    shortcuts: Optional[Dict[str, str]] = None


# ----------------------------------------------------------------------
# Raw -> model
# ----------------------------------------------------------------------

def parse_step(raw: Any, where: str) -> Step:
    """A mapping is a single command; a list is a parallel group."""
    if isinstance(raw, list):
        return Parallel(
            steps=tuple(parse_step(item, f"{where}.{i + 1}") for i, item in enumerate(raw))
        )
    if isinstance(raw, dict):
        try:
            return Single(command=CommandDoc.model_validate(raw).to_spec())
        except ValidationError as e:
            raise ValueError(f"step {where}: {_first_error(e)}") from e
    raise ValueError(
        f"step {where}: expected a command mapping or a list of steps, got {type(raw).__name__}"
    )


def script_from_data(data: Any, source: Optional[Path] = None) -> ScriptDefinition:
    origin = str(source) if source else "<data>"
    if not isinstance(data, dict):
        raise ConfigParseError(
            message=f"Expected a mapping at the top level, got {type(data).__name__}",
            details={"file": origin},
        )
    try:
        doc = ScriptDoc.model_validate(data)
        commands = tuple(
            parse_step(raw, str(i + 1)) for i, raw in enumerate(doc.commands)
        )
    except ValidationError as e:
        raise ConfigParseError(
            message=f"Invalid script: {_first_error(e)}",
            details={"file": origin},
        ) from e
    except ValueError as e:
        raise ConfigParseError(
            message=f"Invalid script: {e}",
            details={"file": origin},
        ) from e

    return ScriptDefinition(
        name=doc.name,
        description=doc.description,
        params=tuple(doc.params or ()),
        secrets=tuple(Secret(name=s.name, env_var=s.env_var) for s in (doc.secrets or [])),
        commands=commands,
        source=source,
    )


def shortcuts_from_data(data: Any, source: Optional[Path] = None) -> Dict[str, str]:
    if data is None:
        return {}
    try:
        doc = ShortcutsDoc.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(
            message=f"Invalid shortcuts file: {_first_error(e)}",
            details={"file": str(source) if source else "<data>"},
        ) from e
    return dict(doc.shortcuts or {})


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
    more = e.error_count() - 1
    suffix = f" (+{more} more)" if more > 0 else ""
    return f"{loc}: {err.get('msg', 'invalid value')}{suffix}"
