"""Shared test fixtures for torlaunch."""

import sys
from pathlib import Path

import pytest

from torlaunch import ChildSupervisor

# Stand-in for the tor binary. Each step is either a raw stdout line, a number
# of seconds to sleep, or one of the @-directives handled below. After the
# last step the script stays alive for `linger` seconds, like a running Tor.
FAKE_TOR = """\
#!{python}
import json, subprocess, sys, time

for step in {steps!r}:
    if isinstance(step, (int, float)):
        time.sleep(step)
    elif step == "@argv":
        print("Apr 01 12:00:00.000 [notice] argv " + json.dumps(sys.argv[1:]), flush=True)
    elif step == "@child":
        child = subprocess.Popen(
            [sys.executable, "-c", "import time; time.sleep(60)"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        print("Apr 01 12:00:00.000 [notice] child %d" % child.pid, flush=True)
    elif step.startswith("@stderr:"):
        sys.stderr.write("x" * int(step[len("@stderr:"):]) + "\\n")
        sys.stderr.flush()
    else:
        sys.stdout.write(step)
        sys.stdout.flush()
time.sleep({linger})
"""


@pytest.fixture
def fake_tor(tmp_path: Path):
    """Return a factory that writes an executable fake tor and returns its path."""
    counter = iter(range(1000))

    def make(*steps, linger: float = 30) -> str:
        path = tmp_path / f"tor-{next(counter)}"
        path.write_text(FAKE_TOR.format(python=sys.executable, steps=list(steps), linger=linger))
        path.chmod(0o755)
        return str(path)

    return make


@pytest.fixture
def supervisor():
    """Return a factory for supervisors that are all closed at teardown."""
    created: list[ChildSupervisor] = []

    def make(binary: str) -> ChildSupervisor:
        sup = ChildSupervisor().binary(binary)
        created.append(sup)
        return sup

    yield make

    for sup in created:
        sup.close()
