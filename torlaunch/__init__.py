"""
torlaunch - Launch a Tor process and wait for it to bootstrap.

Spawns the Tor binary, follows its stdout log until the requested bootstrap
percent is reported, and guarantees the process is killed on every failure
path.
"""

from .config import LaunchConfig
from .errors import (
    AlreadyLaunchedError,
    InvalidBootstrapLine,
    InvalidLogLine,
    LaunchError,
    LaunchTimeout,
    NotStartedError,
    PatternCompileError,
    ProcessError,
    RouterError,
    UnexpectedEOF,
)
from .logline import LineClass, LogLine, classify_line
from .process import ChildSupervisor, SupervisorState

__version__ = "0.1.0"

__all__ = [
    "AlreadyLaunchedError",
    "ChildSupervisor",
    "InvalidBootstrapLine",
    "InvalidLogLine",
    "LaunchConfig",
    "LaunchError",
    "LaunchTimeout",
    "LineClass",
    "LogLine",
    "NotStartedError",
    "PatternCompileError",
    "ProcessError",
    "RouterError",
    "SupervisorState",
    "UnexpectedEOF",
    "classify_line",
]
