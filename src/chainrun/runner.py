# runner.py
from __future__ import annotations

import shlex
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from . import settings
from .context import RunContext
from .errors import ChainRunError, CycleDetected, MissingParam, MissingSecret
from .executor import Executor
from .loader import ConfigLoader, ScriptSource
from .model import ScriptDefinition
from .scheduler import GroupScheduler
from .ui.console import Console, get_console
from .variables import VariableStore

CallStack = Tuple[str, ...]

# CLI subcommands that are never treated as a chained script name
BUILTIN_COMMANDS = {"list", "init", "create", "help", "h", "version", "v"}


# ----------------------------------------------------------------------
# Chained command detection
# ----------------------------------------------------------------------

def parse_chain(command_line: str) -> Optional[Tuple[str, List[str]]]:
    """
    Recognise `chainrun <script> [args...]` / `chainrun run <script> [args...]`.

    Returns (identifier, args), or None for an ordinary shell command.
    """
    try:
        words = shlex.split(command_line)
    except ValueError:
        # unbalanced quotes etc.: let the shell deal with it
        return None

    if not words or Path(words[0]).name != settings.PROGRAM_NAME:
        return None

    rest = words[1:]
    if rest and rest[0] == "run":
        rest = rest[1:]
    if not rest or rest[0].startswith("-") or rest[0] in BUILTIN_COMMANDS:
        return None
    return rest[0], rest[1:]


def _display(key: str) -> str:
    return Path(key).stem if key.endswith(tuple(settings.SUPPORTED_EXTENSIONS)) else key


# ----------------------------------------------------------------------
# Runner
# ----------------------------------------------------------------------

class ScriptRunner:
    """
    Top-level orchestrator: shortcut -> cycle check -> load -> bind params and
    secrets -> run steps -> exit status.

    Chained commands re-enter invoke() with the extended call stack; the stack
    is an immutable tuple passed down explicitly, so independent runs never
    share cycle-detection state.
    """

    def __init__(
        self,
        loader: Optional[ScriptSource] = None,
        ctx: Optional[RunContext] = None,
        *,
        console: Optional[Console] = None,
        max_lanes: int = settings.MAX_PARALLEL_LANES,
    ):
        self.loader = loader if loader is not None else ConfigLoader()
        self.ctx = ctx if ctx is not None else RunContext.capture()
        self.console = console or get_console()
        self.max_lanes = max_lanes
        self._shortcuts: Optional[Dict[str, str]] = None

    # ---- public API ----
    def run(self, identifier: str, args: Sequence[str] = (), call_stack: CallStack = ()) -> int:
        """Run a script and map every outcome to an exit status."""
        try:
            return self.invoke(identifier, args, call_stack)
        except ChainRunError as e:
            self.console.print_error(
                e.kind,
                e.message,
                details=[f"{k}={v}" for k, v in e.details.items()] or None,
            )
            return e.exit_status

    def invoke(self, identifier: str, args: Sequence[str] = (), call_stack: CallStack = ()) -> int:
        """
        Like run(), but pre-run errors (unknown script, missing param/secret,
        cycle, parse error) propagate. Chained commands go through here so such
        errors abort the outer run as well.
        """
        target = self.resolve_shortcut(identifier)

        key = self.loader.key(target)
        if key in call_stack:
            chain = " -> ".join(_display(k) for k in (*call_stack, key))
            raise CycleDetected(
                message=f"Script '{target}' is already running",
                script=target,
                details={"chain": chain},
            )

        script = self.loader.load(target)
        store = self.seed(script, args)

        stack: CallStack = (*call_stack, key)
        executor = Executor(
            self.ctx,
            script=script.name,
            console=self.console,
            chain=lambda line: self._dispatch(line, stack),
        )
        scheduler = GroupScheduler(executor, max_lanes=self.max_lanes)

        self.console.print_script_started(script.name, script.description, depth=len(call_stack))
        outcome = scheduler.run(script.commands, store)

        status = settings.EXIT_OK if outcome.completed else settings.EXIT_STEP_FAILED
        self.console.print_results(
            script.name,
            "completed" if outcome.completed else "aborted",
            failures=executor.failures,
            aborted_at=outcome.aborted_at,
        )
        return status

    # ---- pieces ----
    def resolve_shortcut(self, identifier: str) -> str:
        if self._shortcuts is None:
            self._shortcuts = self.loader.shortcuts()
        target = self._shortcuts.get(identifier)
        if target is not None:
            self.console.print_debug(f"shortcut '{identifier}' -> '{target}'")
            return target
        return identifier

    def seed(self, script: ScriptDefinition, args: Sequence[str]) -> VariableStore:
        """Bind positional args to params, then secrets from the environment."""
        if len(args) != len(script.params):
            raise MissingParam(
                message=f"Expected {len(script.params)} parameter(s), got {len(args)}",
                script=script.name,
                details={"params": ", ".join(script.params) or "(none)"},
            )
        params = dict(zip(script.params, args))

        secrets: Dict[str, str] = {}
        for secret in script.secrets:
            value = self.ctx.env.get(secret.env_var)
            if value is None:
                raise MissingSecret(
                    message=f"Secret '{secret.name}' not found in env '{secret.env_var}'",
                    script=script.name,
                )
            secrets[secret.name] = value

        return VariableStore(params=params, secrets=secrets)

    def _dispatch(self, command_line: str, stack: CallStack) -> Optional[int]:
        chained = parse_chain(command_line)
        if chained is None:
            return None
        identifier, args = chained
        return self.invoke(identifier, args, stack)
