"""
Errors raised while launching and supervising a Tor process.

Every failure of launch() or kill() is a LaunchError subclass, so callers can
catch the whole family at once and still branch on the specific kind.
"""


class LaunchError(Exception):
    """Base exception for Tor launch failures."""


class ProcessError(LaunchError):
    """Spawning, signalling, or reading from the child process failed."""


class UnexpectedEOF(ProcessError):
    """Tor closed its stdout before reaching the target bootstrap percent."""

    def __init__(self, message: str = "Tor stdout closed before bootstrap completed"):
        super().__init__(message)


class RouterError(LaunchError):
    """Tor logged an [err] line. Carries the warnings logged before it."""

    def __init__(self, body: str, warnings: list[str]):
        self.body = body
        self.warnings = list(warnings)
        super().__init__(body)

    def __str__(self) -> str:
        if not self.warnings:
            return self.body
        return f"{self.body} (after {len(self.warnings)} warning(s): {'; '.join(self.warnings)})"


class InvalidLogLine(LaunchError):
    """A stdout line was too short to hold the timestamp prefix."""

    def __init__(self, line: str = ""):
        self.line = line
        super().__init__(f"Invalid Tor log line: {line!r}")


class InvalidBootstrapLine(LaunchError):
    """A bootstrap notice whose percent could not be parsed."""

    def __init__(self, body: str):
        self.body = body
        super().__init__(body)


class PatternCompileError(LaunchError):
    """The bootstrap regular expression failed to compile."""


class NotStartedError(LaunchError):
    """kill() was called before the process was spawned."""

    def __init__(self, message: str = "Tor process was never started"):
        super().__init__(message)


class AlreadyLaunchedError(LaunchError):
    """The supervisor was launched already and its config is frozen."""

    def __init__(self, message: str = "Tor process was already launched"):
        super().__init__(message)


class LaunchTimeout(LaunchError):
    """The deadline passed before the target bootstrap percent was logged."""

    def __init__(self, seconds: int = 0):
        self.seconds = seconds
        super().__init__(f"Tor did not bootstrap within {seconds}s")
