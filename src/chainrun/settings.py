from __future__ import annotations
import os
from pathlib import Path


def env_int(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


PROGRAM_NAME = "chainrun"

SCRIPT_DIR_NAME = os.environ.get("CHAINRUN_DIR_NAME", ".chainrun")
HOME_DIR = Path(os.environ.get("CHAINRUN_HOME", str(Path.home()))).expanduser()
SHORTCUTS_FILE = ".shortcuts.yaml"
SUPPORTED_EXTENSIONS = ("yaml", "yml", "json", "toml")

MAX_PARALLEL_LANES = env_int("CHAINRUN_MAX_LANES", 4, minimum=1)
OUTPUT_TAIL = env_int("CHAINRUN_OUTPUT_TAIL", 4000, minimum=0)

# Exit statuses reported by ScriptRunner.run / the CLI
EXIT_OK = 0
EXIT_STEP_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130
