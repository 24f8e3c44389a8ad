# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click
import yaml

from . import __version__, settings
from .errors import ChainRunError
from .loader import ConfigLoader, ScriptListing, add_shortcut
from .model import Parallel, Single, Step
from .runner import ScriptRunner
from .ui.console import Console, get_console, set_console

DEFAULT_SHORTCUTS = """shortcuts:
  e: "example.yaml"
"""

SCRIPT_BODY = """#params:
#  - "message"
commands:
  - command: "echo hello"
    capture: greeting
    description: "Capture some output"
  - command: "echo Got: ${greeting}"
#  - - command: "echo lane one"        # nested list = parallel group
#    - command: "echo lane two"
#  - command: example
#    options:
#      interactive: false
#      os: linux|windows|macos
#      proceed_on_failure: false
#      delay_ms: 500
#      fallback:
#        - command: "echo repair"
"""


def script_template(name: str, description: str) -> str:
    """Starter script document used by `init` and `create`."""
    header = yaml.safe_dump({"name": name, "description": description}, sort_keys=False)
    return header + SCRIPT_BODY


class ScriptGroup(click.Group):
    """
    `chainrun NAME ARGS...` is shorthand for `chainrun run NAME ARGS...`.

    Also accepts the short aliases `h` (help) and `v` (version).
    """

    ALIASES = {"h": "help", "v": "version"}

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self.ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        if args and self.get_command(ctx, args[0]) is None and not args[0].startswith("-"):
            args = ["run", *args]
        return super().resolve_command(ctx, args)


@click.group(cls=ScriptGroup)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option("--quiet", is_flag=True, default=False, help="Only print warnings, errors and results")
@click.version_option(__version__, prog_name=settings.PROGRAM_NAME)
def cli(debug, quiet):
    """chainrun: run declarative shell scripts with captures, fallbacks and parallel steps."""
    console = Console(debug=debug, quiet=quiet)
    set_console(console)


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("identifier")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(identifier, args):
    """Run the script IDENTIFIER (a name, shortcut or file path) with positional ARGS."""
    console = get_console()

    try:
        runner = ScriptRunner(ConfigLoader(), console=console)
        status = runner.run(identifier, list(args))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(settings.EXIT_INTERRUPTED)
    except Exception as e:
        console.print_exception(e)
        sys.exit(settings.EXIT_STEP_FAILED)

    sys.exit(status)


def _print_step(step: Step, number: str, console: Console) -> None:
    if isinstance(step, Single):
        console.print_info(f"    {number}. {step.command.template}")
        if step.command.description:
            console.print_info(f"       Description: {step.command.description}")
    elif isinstance(step, Parallel):
        console.print_info(f"    {number}. (parallel, {len(step.steps)} lane(s))")
        for i, lane in enumerate(step.steps):
            _print_step(lane, f"{number}.{i + 1}", console)


def _print_listing(listing: ScriptListing, console: Console) -> None:
    console.print_header(f"Scripts in {listing.directory}")
    for script in listing.scripts:
        console.print_info("-------------------------------------------------")
        file_name = script.source.name if script.source else script.name
        console.print_info(f"File: {file_name}")
        console.print_info(f"  Name: {script.name}")
        if script.description:
            console.print_info(f"  Description: {script.description}")
        if script.params:
            console.print_info("  Required Parameters:")
            for param in script.params:
                console.print_info(f"    {param}")
        if script.commands:
            console.print_info("  Commands:")
            for i, step in enumerate(script.commands):
                _print_step(step, str(i + 1), console)

    for file_name, err in listing.errors.items():
        console.print_warning(f"{file_name}: {err.message}")

    if listing.shortcuts:
        console.print_info("\nShortcuts:")
        for key, value in sorted(listing.shortcuts.items()):
            console.print_info(f"  {key} -> {value}")


@cli.command(name="list")
def list_scripts():
    """List available scripts and shortcuts (local first, then global)."""
    console = get_console()
    listings = ConfigLoader().discover()

    if not listings:
        console.print_error(
            "No script directory found",
            f"Could not find a {settings.SCRIPT_DIR_NAME} directory here or in {settings.HOME_DIR}.",
            suggestion=f"Create one with:\n  {settings.PROGRAM_NAME} init",
        )
        sys.exit(settings.EXIT_CONFIG_ERROR)

    for listing in listings:
        _print_listing(listing, console)
    if len(listings) > 1:
        console.print_info("\nLocal scripts shadow global scripts with the same name.")


def _script_dir(global_: bool, console: Console) -> Path:
    base = settings.HOME_DIR if global_ else Path.cwd()
    target = base / settings.SCRIPT_DIR_NAME

    if target.exists():
        console.print_info(f"Directory already exists: {target}")
    else:
        target.mkdir(parents=True)
        console.print_info(f"Created directory: {target}")
    return target


def _write_new(path: Path, content: str, console: Console) -> None:
    if path.exists():
        console.print_info(f"Already exists: {path}")
        return
    path.write_text(content, encoding="utf-8")
    console.print_info(f"Created: {path}")


@cli.command()
@click.option("--global", "global_", is_flag=True, default=False, help="Initialize the global directory in your home folder")
def init(global_):
    """Create a script directory with an example script and shortcuts file."""
    console = get_console()
    target = _script_dir(global_, console)

    _write_new(target / settings.SHORTCUTS_FILE, DEFAULT_SHORTCUTS, console)
    _write_new(
        target / "example.yaml",
        script_template("Example", f"Example script created by {settings.PROGRAM_NAME} init"),
        console,
    )


@cli.command()
@click.argument("name")
@click.option("--shortcut", "-s", default=None, help="Shortcut key that runs the new script")
@click.option("--global", "global_", is_flag=True, default=False, help="Create the script in the global directory")
@click.option("--description", "-d", default="Description", show_default=True, help="Description written into the script")
def create(name, shortcut, global_, description):
    """Create NAME.yaml from the starter template, optionally with a shortcut."""
    console = get_console()
    if not name or name.startswith(".") or "/" in name or "\\" in name:
        raise click.BadParameter("use a plain file name without directories", param_hint="NAME")
    if shortcut is not None and not shortcut.strip():
        raise click.BadParameter("must not be empty", param_hint="--shortcut")

    target = _script_dir(global_, console)
    file_name = f"{name}.yaml"
    _write_new(target / file_name, script_template(name, description), console)

    if shortcut:
        try:
            previous = add_shortcut(target, shortcut.strip(), file_name)
        except ChainRunError as e:
            console.print_error(e.kind, e.message, details=[f"{k}={v}" for k, v in e.details.items()] or None)
            sys.exit(e.exit_status)
        if previous is not None and previous != file_name:
            console.print_warning(f"shortcut '{shortcut.strip()}' pointed at '{previous}', now '{file_name}'")
        console.print_info(f"Updated shortcuts: {shortcut.strip()} -> {file_name}")


@cli.command(name="help")
@click.pass_context
def help_(ctx):
    """Show this help message (alias: h)."""
    click.echo(ctx.parent.get_help())


@cli.command()
def version():
    """Show the version (alias: v)."""
    click.echo(f"{settings.PROGRAM_NAME}, version {__version__}")


if __name__ == "__main__":
    cli()
