"""
Classification of Tor stdout log lines.

Tor logs to stdout as "<timestamp> [<severity>] <message>", where the
timestamp has a fixed width ("May 16 02:50:08.792"). Only the severity tag and
the "Bootstrapped N%:" notice are interpreted; everything else is passed
through as INFO or OTHER.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidBootstrapLine, InvalidLogLine, LaunchError, PatternCompileError

# Formats with a different timestamp width need a new constant here.
TIMESTAMP_LEN = len("May 16 02:50:08.792")

MAX_PERCENT = 255

try:
    BOOTSTRAP_PATTERN = re.compile(r"^\[notice\] Bootstrapped (?P<perc>[0-9]{1,3})%: ")
except re.error as e:
    raise PatternCompileError(f"Invalid bootstrap pattern: {e}") from e


class LineClass(Enum):
    INFO = "info"
    BOOTSTRAP = "bootstrap"
    WARNING = "warning"
    ERROR = "error"
    OTHER = "other"
    MALFORMED = "malformed"


@dataclass
class LogLine:
    """A single classified stdout line."""

    timestamp: str
    body: str
    classification: LineClass
    percent: Optional[int] = None
    error: Optional[LaunchError] = None

    def __str__(self) -> str:
        return f"{self.timestamp} {self.body}"


def _strip_newline(text: str) -> str:
    if text.endswith("\n"):
        text = text[:-1]
        if text.endswith("\r"):
            text = text[:-1]
    return text


def _parse_percent(body: str) -> Optional[int]:
    match = BOOTSTRAP_PATTERN.match(body)
    if not match:
        return None
    percent = int(match.group("perc"))
    if percent > MAX_PERCENT:
        return None
    return percent


def classify_line(raw: str) -> LogLine:
    """
    Classify one raw stdout line, trailing newline included.

    Never raises: a line that cannot be interpreted is returned as MALFORMED
    with the matching error in `error`, and the caller decides what to do.
    """
    if len(raw) < TIMESTAMP_LEN + 1:
        return LogLine(
            timestamp="",
            body=_strip_newline(raw),
            classification=LineClass.MALFORMED,
            error=InvalidLogLine(raw),
        )

    timestamp = raw[:TIMESTAMP_LEN]
    body = _strip_newline(raw[TIMESTAMP_LEN + 1:])
    tokens = body.split(" ", 2)
    severity = tokens[0]

    if severity == "[notice]":
        if len(tokens) > 1 and tokens[1] == "Bootstrapped":
            percent = _parse_percent(body)
            if percent is None:
                return LogLine(
                    timestamp=timestamp,
                    body=body,
                    classification=LineClass.MALFORMED,
                    error=InvalidBootstrapLine(body),
                )
            return LogLine(timestamp, body, LineClass.BOOTSTRAP, percent=percent)
        return LogLine(timestamp, body, LineClass.INFO)
    if severity == "[warn]":
        return LogLine(timestamp, body, LineClass.WARNING)
    if severity == "[err]":
        return LogLine(timestamp, body, LineClass.ERROR)
    return LogLine(timestamp, body, LineClass.OTHER)
