# executor.py
from __future__ import annotations

import threading
from typing import Callable, List, Optional

from . import settings
from .context import RunContext
from .errors import CommandNonZeroExit, StepError
from .model import CommandSpec, StepFailure, StepOutcome
from .ui.console import Console, get_console
from .variables import VariableStore, resolve

# Returns the exit status of a chained run, or None if the line is an ordinary
# shell command.
ChainDispatch = Callable[[str], Optional[int]]

EXIT_HINTS = {
    126: "Command found but not executable (check file permissions).",
    127: "Command not found (install it or fix PATH).",
}


def _tail(text: str) -> str:
    return text[-settings.OUTPUT_TAIL:] if text else ""


class Executor:
    """
    Runs one CommandSpec: OS filter, resolve, spawn, fallback + single retry,
    post-step delay.

    Failures that survive the retry protocol are recorded in `failures` so the
    runner can report them once the script is done.
    """

    def __init__(
        self,
        ctx: RunContext,
        *,
        script: str,
        console: Optional[Console] = None,
        chain: Optional[ChainDispatch] = None,
    ):
        self.ctx = ctx
        self.script = script
        self.console = console or get_console()
        self.chain = chain
        self.failures: List[StepFailure] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, spec: CommandSpec, store: VariableStore) -> StepOutcome:
        if self._skipped(spec):
            return StepOutcome.SKIPPED

        try:
            self._attempt(spec, store)
        except StepError as first:
            if not spec.options.fallback:
                return self._fail(spec, first)

            self.console.print_debug(f"first attempt failed: {first}")
            self._run_fallbacks(spec, store)

            self.console.print_retry(spec.template)
            try:
                self._attempt(spec, store)
            except StepError as second:
                return self._fail(spec, second)

        self._delay(spec)
        return StepOutcome.SUCCEEDED

    # ------------------------------------------------------------------
    # Protocol pieces
    # ------------------------------------------------------------------

    def _skipped(self, spec: CommandSpec) -> bool:
        target = spec.options.os
        if target is None or target == self.ctx.platform:
            return False
        current = self.ctx.platform.value if self.ctx.platform else "unknown"
        self.console.print_skipped(
            spec.template, f"requires {target.value}, running on {current}"
        )
        return True

    def _attempt(self, spec: CommandSpec, store: VariableStore) -> None:
        """One resolve + spawn. Raises a StepError subclass on failure."""
        line = resolve(spec.template, store)
        self.console.print_step(line, spec.description)

        status = self.chain(line) if self.chain is not None else None
        if status is not None:
            if spec.capture:
                self.console.print_warning(
                    f"capture '{spec.capture}' ignored: chained scripts produce no capturable output"
                )
            if status != 0:
                raise CommandNonZeroExit(
                    message="Chained script failed",
                    script=self.script,
                    command=line,
                    exit_code=status,
                )
            return

        interactive = spec.options.interactive
        if interactive and spec.capture:
            self.console.print_warning(
                f"capture '{spec.capture}' ignored: interactive commands are not captured"
            )

        result = self.ctx.spawner.spawn(line, interactive=interactive)
        if not interactive:
            self.console.print_output(result.stdout)

        if not result.ok:
            raise CommandNonZeroExit(
                message=f"Command exited with status {result.exit_code}",
                script=self.script,
                command=line,
                exit_code=result.exit_code,
                stdout=_tail(result.stdout),
                stderr=_tail(result.stderr),
            )

        if spec.capture and not interactive:
            store.set_capture(spec.capture, result.stdout.strip())
            self.console.print_debug(f"captured ${{{spec.capture}}}")

    def _run_fallbacks(self, spec: CommandSpec, store: VariableStore) -> None:
        fallbacks = spec.options.fallback
        self.console.print_fallback(spec.template, len(fallbacks))
        for fb in fallbacks:
            if self._skipped(fb):
                continue
            try:
                self._attempt(fb, store)
            except StepError as e:
                # fallback failures never stop the chain or the retry
                self.console.print_warning(f"fallback '{fb.template}' failed: {e.message}")
                continue
            self._delay(fb)

    def _fail(self, spec: CommandSpec, err: StepError) -> StepOutcome:
        fatal = not spec.options.proceed_on_failure
        exit_code = err.exit_code if isinstance(err, CommandNonZeroExit) else None

        with self._lock:
            self.failures.append(
                StepFailure(
                    script=self.script,
                    command=spec.template,
                    error=str(err),
                    fatal=fatal,
                )
            )

        self.console.print_failure(
            spec.label,
            str(err),
            exit_code=exit_code,
            hint=EXIT_HINTS.get(exit_code) if exit_code is not None else None,
            tolerated=not fatal,
        )
        return StepOutcome.FAILED_FATAL if fatal else StepOutcome.FAILED_TOLERATED

    def _delay(self, spec: CommandSpec) -> None:
        if spec.options.delay_ms:
            self.ctx.sleep(spec.options.delay_ms / 1000.0)
