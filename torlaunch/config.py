"""
Launch configuration for a supervised Tor process.

LaunchConfig holds everything needed to build the Tor command line and to
decide when the launch has succeeded. Values are validated on assignment so
the fluent builder on ChildSupervisor cannot produce an out-of-range config.
"""

import os
import shlex
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BINARY = "tor"


class LaunchConfig(BaseModel):
    """Tor launch settings."""

    model_config = ConfigDict(validate_assignment=True)

    binary_path: str = Field(DEFAULT_BINARY, description="Tor executable to run")
    config_file: Optional[str] = Field(None, description="torrc passed with -f")
    extra_args: list[str] = Field(default_factory=list, description="Arguments appended verbatim")
    target_percent: int = Field(100, ge=0, le=100, description="Bootstrap percent that counts as ready")
    deadline_seconds: int = Field(0, ge=0, description="Launch deadline; 0 waits forever")

    def command_line(self) -> list[str]:
        """Build the argument vector passed to the process, binary first."""
        cmd = [self.binary_path]
        if self.config_file is not None:
            cmd += ["-f", self.config_file]
        cmd += self.extra_args
        return cmd

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "LaunchConfig":
        """
        Build a config from environment variables, loading `env_file` first.

        Reads TOR_BINARY, TOR_CONFIG_FILE, TOR_EXTRA_ARGS (shell-style split),
        TOR_TARGET_PERCENT and TOR_DEADLINE. Unset variables keep the defaults.
        """
        load_dotenv(env_file)

        values = {}
        if os.environ.get("TOR_BINARY"):
            values["binary_path"] = os.environ["TOR_BINARY"]
        if os.environ.get("TOR_CONFIG_FILE"):
            values["config_file"] = os.environ["TOR_CONFIG_FILE"]
        if os.environ.get("TOR_EXTRA_ARGS"):
            values["extra_args"] = shlex.split(os.environ["TOR_EXTRA_ARGS"])
        if os.environ.get("TOR_TARGET_PERCENT"):
            values["target_percent"] = os.environ["TOR_TARGET_PERCENT"]
        if os.environ.get("TOR_DEADLINE"):
            values["deadline_seconds"] = os.environ["TOR_DEADLINE"]
        return cls(**values)
