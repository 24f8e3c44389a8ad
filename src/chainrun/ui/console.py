"""Console output formatting utilities for chainrun."""

from __future__ import annotations

import sys
import threading
from typing import Optional, Sequence

from ..model import StepFailure


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, quiet: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            quiet: If True, suppress step chatter (errors and warnings still print)
        """
        self.debug = debug
        self.quiet = quiet
        self._lock = threading.Lock()

    def _out(self, *lines: str, err: bool = False) -> None:
        # parallel lanes share one console; keep each block together
        stream = sys.stderr if err else sys.stdout
        with self._lock:
            for line in lines:
                print(line, file=stream)

    def print_header(self, title: str) -> None:
        """Print a section header."""
        self._out(f"\n{title}", "-" * len(title))

    def print_script_started(
        self,
        name: str,
        description: Optional[str] = None,
        depth: int = 0,
    ) -> None:
        """Print script start information."""
        if self.quiet:
            return
        prefix = "CHAINED SCRIPT" if depth else "RUNNING SCRIPT"
        lines = [f"\n{prefix}: {name}"]
        if description:
            lines.append(f"Description: {description}")
        self._out(*lines)

    def print_step(self, command: str, description: Optional[str] = None) -> None:
        """Print step start message."""
        if self.quiet:
            return
        lines = [f"\n> {command}"]
        if description:
            lines.append(f"  # {description}")
        self._out(*lines)

    def print_output(self, text: str) -> None:
        """Echo captured process output."""
        if self.quiet or not text:
            return
        self._out(text.rstrip("\n"))

    def print_skipped(self, command: str, reason: str) -> None:
        """Print skipped step message."""
        if self.quiet:
            return
        self._out(f"\nSKIPPED: {command} ({reason})")

    def print_fallback(self, command: str, count: int) -> None:
        """Print fallback chain start message."""
        if self.quiet:
            return
        self._out(f"FALLBACK: running {count} command(s) before retrying '{command}'")

    def print_retry(self, command: str) -> None:
        """Print retry message."""
        if self.quiet:
            return
        self._out(f"RETRY: {command}")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
        tolerated: bool = False,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Step command or description
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
            tolerated: If True, the run continues past this failure
        """
        prefix = "STEP FAILED (continuing)" if tolerated else "STEP FAILED"
        lines = [f"{prefix}: {name}"]
        if exit_code is not None:
            lines.append(f"Exit code: {exit_code}")
        if hint:
            lines.append(f"Hint: {hint}")
        if self.debug:
            lines.append(f"Error details: {reason}")
        else:
            # Show first line of error for non-debug mode
            error_line = reason.split('\n')[0] if reason else "Unknown error"
            lines.append(f"Error: {error_line}")
        self._out(*lines, err=True)

    def print_warning(self, message: str) -> None:
        """Print a configuration or runtime warning."""
        self._out(f"WARNING: {message}", err=True)

    def print_results(
        self,
        script: str,
        status: str,
        failures: Sequence[StepFailure] = (),
        aborted_at: Optional[int] = None,
    ) -> None:
        """Print final results summary."""
        lines = ["\n" + "=" * 40, f"RESULTS: {script}", "=" * 40]
        lines.append(f"  status: {status.upper()}")
        if aborted_at is not None:
            lines.append(f"  aborted at step {aborted_at + 1}")
        for f in failures:
            tag = "FATAL" if f.fatal else "WARNING"
            lines.append(f"  {tag} [{f.script}] {f.command}: {f.error.splitlines()[0]}")
        self._out(*lines)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        lines = [f"\nERROR: {title}", f"{message}"]
        if details:
            for detail in details:
                lines.append(f"  {detail}")
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._out(*lines, err=True)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            with self._lock:
                traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._out(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._out(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
