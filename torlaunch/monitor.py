"""
Bootstrap monitor for Tor's stdout.

Reads log lines until Tor reports the target bootstrap percent, logs an
error, or closes the stream. Warnings seen along the way are kept so that a
later [err] line can be reported with its context.
"""

import logging
import queue
from dataclasses import dataclass
from typing import IO, Optional

from .errors import LaunchError, ProcessError, RouterError, UnexpectedEOF
from .logline import LineClass, classify_line

logger = logging.getLogger(__name__)


@dataclass
class LaunchOutcome:
    """Result delivered to the launch sink. Exactly one field is set."""

    reader: Optional[IO[str]] = None
    error: Optional[LaunchError] = None

    @property
    def ready(self) -> bool:
        return self.error is None


class StdoutMonitor:
    """Consumes Tor stdout until bootstrap reaches `target_percent`."""

    def __init__(self, reader: IO[str], target_percent: int):
        self._reader = reader
        self.target_percent = target_percent
        self.warnings: list[str] = []

    def run(self) -> IO[str]:
        """
        Read lines until the target percent is reached and return the reader.

        The returned reader is positioned right after the accepting bootstrap
        line. The monitor drops its own reference before returning, so the
        caller is the only one reading from it afterwards.
        """
        reader = self._reader
        if reader is None:
            raise ProcessError("Monitor has no reader (already ran)")

        while True:
            try:
                raw = reader.readline()
            except (OSError, ValueError) as e:
                raise ProcessError(f"Failed to read Tor stdout: {e}") from e

            if not raw:
                raise UnexpectedEOF()

            line = classify_line(raw)
            logger.debug(str(line))

            if line.classification is LineClass.BOOTSTRAP:
                if line.percent >= self.target_percent:
                    logger.info(f"Tor bootstrapped {line.percent}% (target {self.target_percent}%)")
                    self._reader = None
                    return reader
            elif line.classification is LineClass.WARNING:
                self.warnings.append(line.body)
            elif line.classification is LineClass.ERROR:
                raise RouterError(line.body, self.warnings)
            elif line.classification is LineClass.MALFORMED:
                raise line.error

    def run_into(self, sink: queue.Queue) -> None:
        """Run the monitor and put a LaunchOutcome into `sink`."""
        try:
            outcome = LaunchOutcome(reader=self.run())
        except LaunchError as e:
            outcome = LaunchOutcome(error=e)
        except Exception as e:
            logger.error(f"Unexpected error while monitoring Tor stdout: {e}")
            outcome = LaunchOutcome(error=ProcessError(str(e)))
        sink.put(outcome)
