"""
Supervisor for a single Tor child process.

Spawns Tor with all standard streams piped, follows its stdout until the
requested bootstrap percent is logged, and kills it on every failure path.
On success the stdout reader stays open on the supervisor so callers can keep
consuming Tor's log after bootstrap.
"""

import logging
import os
import queue
import shlex
import signal
import subprocess
import threading
from enum import Enum
from typing import IO, Iterable, Optional

import psutil

from .config import LaunchConfig
from .deadline import DeadlineSource
from .errors import AlreadyLaunchedError, LaunchError, NotStartedError, ProcessError
from .monitor import LaunchOutcome, StdoutMonitor

logger = logging.getLogger(__name__)

# Seconds to wait for the child to be reaped after SIGKILL
KILL_WAIT_TIMEOUT = 10
# Seconds to wait for the monitor thread after a failed launch
MONITOR_JOIN_TIMEOUT = 5


class SupervisorState(Enum):
    NEW = "new"
    LAUNCHED = "launched"
    TERMINATED = "terminated"


class ChildSupervisor:
    """
    Launches Tor and waits for it to bootstrap.

    Configure with the chained builder methods, then call launch():

        with ChildSupervisor().config_file("torrc").deadline(60) as tor:
            tor.launch()
            for line in tor.stdout:
                ...

    Leaving the with-block (or calling close()) kills Tor, whether or not the
    caller still holds the stdout reader.
    """

    def __init__(self, config: Optional[LaunchConfig] = None):
        self.config = config.model_copy(deep=True) if config else LaunchConfig()
        self.process: Optional[subprocess.Popen] = None
        self.stdout: Optional[IO[str]] = None
        self.warnings: list[str] = []
        self.state = SupervisorState.NEW
        self._stderr_thread: Optional[threading.Thread] = None

    # Builder

    def _check_mutable(self):
        if self.state is not SupervisorState.NEW:
            raise AlreadyLaunchedError("Cannot change config after launch")

    def binary(self, path: str) -> "ChildSupervisor":
        self._check_mutable()
        self.config.binary_path = path
        return self

    def config_file(self, path: str) -> "ChildSupervisor":
        self._check_mutable()
        self.config.config_file = path
        return self

    def arg(self, arg: str) -> "ChildSupervisor":
        self._check_mutable()
        self.config.extra_args = [*self.config.extra_args, arg]
        return self

    def args(self, args: Iterable[str]) -> "ChildSupervisor":
        for arg in args:
            self.arg(arg)
        return self

    def target_percent(self, percent: int) -> "ChildSupervisor":
        self._check_mutable()
        self.config.target_percent = percent
        return self

    def deadline(self, seconds: int) -> "ChildSupervisor":
        self._check_mutable()
        self.config.deadline_seconds = seconds
        return self

    # Lifecycle

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def is_running(self) -> bool:
        """Check if the Tor process is still alive."""
        return self.process is not None and self.process.poll() is None

    def launch(self) -> "ChildSupervisor":
        """
        Start Tor and block until it reaches the target bootstrap percent.

        Returns self with `stdout` positioned after the accepting bootstrap
        line. Raises a LaunchError subclass on failure, after Tor has been
        killed.
        """
        if self.state is not SupervisorState.NEW:
            raise AlreadyLaunchedError()

        # Snapshot so later mutation of a shared LaunchConfig cannot leak in
        config = self.config.model_copy(deep=True)
        self.config = config
        self.state = SupervisorState.LAUNCHED

        cmd = config.command_line()
        logger.info(f"Launching Tor: {shlex.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=True,  # Own process group, killed as a whole
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self.state = SupervisorState.TERMINATED
            logger.error(f"Failed to start {config.binary_path}: {e}")
            raise ProcessError(f"Failed to start {config.binary_path}: {e}") from e

        self.process = process
        logger.info(f"Started Tor with PID {process.pid}")

        self._stderr_thread = threading.Thread(
            target=self._drain_stderr,
            args=(process.stderr, process.pid),
            name=f"tor-{process.pid}-stderr",
            daemon=True,
        )
        self._stderr_thread.start()

        sink: queue.Queue = queue.Queue()
        monitor = StdoutMonitor(process.stdout, config.target_percent)
        deadline = DeadlineSource(config.deadline_seconds, sink)
        monitor_thread = threading.Thread(
            target=monitor.run_into,
            args=(sink,),
            name=f"tor-{process.pid}-stdout",
            daemon=True,
        )

        deadline.arm()
        monitor_thread.start()
        try:
            outcome: LaunchOutcome = sink.get()
        except BaseException:
            self._fail()
            raise
        finally:
            deadline.cancel()

        self.warnings = list(monitor.warnings)

        if outcome.ready:
            monitor_thread.join()
            self.stdout = outcome.reader
            return self

        logger.error(f"Tor launch failed: {outcome.error}")
        self._fail()
        monitor_thread.join(timeout=MONITOR_JOIN_TIMEOUT)
        if monitor_thread.is_alive():
            logger.warning(f"Stdout monitor for PID {process.pid} did not exit after kill")
        raise outcome.error

    def kill(self) -> None:
        """Kill Tor and any processes it spawned, then reap it."""
        if self.process is None:
            raise NotStartedError()

        process = self.process
        if process.poll() is None:
            try:
                descendants = psutil.Process(process.pid).children(recursive=True)
            except psutil.NoSuchProcess:
                descendants = []
            except psutil.Error as e:
                raise ProcessError(f"Failed to list children of PID {process.pid}: {e}") from e

            try:
                process.kill()
            except OSError as e:
                raise ProcessError(f"Failed to kill PID {process.pid}: {e}") from e

            for child in descendants:
                try:
                    child.kill()
                except psutil.NoSuchProcess:
                    pass
                except psutil.Error as e:
                    logger.warning(f"Failed to kill Tor child PID {child.pid}: {e}")

        # Children of a Tor that already exited were reparented, so psutil
        # cannot find them any more; they are still in Tor's process group.
        self._kill_group(process.pid)

        try:
            process.wait(timeout=KILL_WAIT_TIMEOUT)
        except subprocess.TimeoutExpired as e:
            raise ProcessError(f"PID {process.pid} did not exit after kill") from e

        if self.state is not SupervisorState.TERMINATED:
            logger.info(f"Killed Tor PID {process.pid} (exit code {process.returncode})")
        self.state = SupervisorState.TERMINATED

    def close(self) -> None:
        """Kill Tor if it was started. Never raises."""
        try:
            self.kill()
        except NotStartedError:
            return
        except LaunchError as e:
            logger.warning(f"Error while killing Tor on close: {e}")

        if self.process.stdin:
            try:
                self.process.stdin.close()
            except OSError:
                pass

    def __enter__(self) -> "ChildSupervisor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass

    def _fail(self):
        try:
            self.kill()
        except LaunchError as e:
            logger.warning(f"Error while killing Tor after failed launch: {e}")

    @staticmethod
    def _kill_group(pgid: int):
        if not hasattr(os, "killpg"):
            return
        try:
            os.killpg(pgid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.warning(f"Failed to kill Tor process group {pgid}: {e}")

    @staticmethod
    def _drain_stderr(stream, pid: int):
        """Read Tor's stderr so it never blocks on a full pipe."""
        try:
            for line in iter(stream.readline, ""):
                line = line.rstrip()
                if line:
                    logger.debug(f"tor[{pid}] stderr: {line}")
        except (OSError, ValueError) as e:
            logger.debug(f"Stopped reading stderr of PID {pid}: {e}")
        finally:
            try:
                stream.close()
            except OSError:
                pass
