__version__ = "0.1.0"

from .context import RunContext
from .errors import ChainRunError
from .executor import Executor
from .loader import ConfigLoader
from .model import CommandOptions, CommandSpec, OperatingSystem, Parallel, ScriptDefinition, Single, StepOutcome
from .runner import ScriptRunner
from .scheduler import GroupScheduler
from .variables import VariableStore, resolve

__all__ = [
    "RunContext",
    "ChainRunError",
    "Executor",
    "ConfigLoader",
    "CommandOptions",
    "CommandSpec",
    "OperatingSystem",
    "Parallel",
    "ScriptDefinition",
    "Single",
    "StepOutcome",
    "ScriptRunner",
    "GroupScheduler",
    "VariableStore",
    "resolve",
]
