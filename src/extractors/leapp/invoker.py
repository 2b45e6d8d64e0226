"""
External LEAPP process invocation.

An ``ExecutionSpec`` describes one run (mode, input, output directory and
redirect targets). ``ToolInvoker`` turns it into a command line, runs it
with stdout/stderr redirected to files and polls a ``ProcessTerminator``
while waiting so that cancellation or a timeout stops the process.

A nonzero exit code is recorded in the outcome and never raised.
"""

from __future__ import annotations

import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from core.enums import ExecutionMode, InvocationState
from core.logging import get_logger

from ..exceptions import ToolLaunchError
from .profiles import ToolProfile

LOGGER = get_logger("extractors.leapp.invoker")

FILESYSTEM_TYPE_TAG = "fs"


@dataclass(frozen=True, slots=True)
class ExecutionSpec:
    """Parameters of one external tool run."""

    mode: ExecutionMode
    output_dir: Path
    stdout_path: Path
    stderr_path: Path
    input_path: Optional[Path] = None
    type_tag: Optional[str] = None

    @classmethod
    def discover_paths(cls, profile: ToolProfile, output_dir: Path) -> "ExecutionSpec":
        return cls(
            mode=ExecutionMode.DISCOVER_PATHS,
            output_dir=output_dir,
            stdout_path=output_dir / profile.manifest_filename,
            stderr_path=output_dir / profile.manifest_error_filename,
        )

    @classmethod
    def analyze_file(cls, profile: ToolProfile, output_dir: Path, input_path: Path, extension: str) -> "ExecutionSpec":
        return cls(
            mode=ExecutionMode.ANALYZE_FILE,
            output_dir=output_dir,
            stdout_path=output_dir / profile.stdout_filename,
            stderr_path=output_dir / profile.stderr_filename,
            input_path=input_path,
            type_tag=extension.lower(),
        )

    @classmethod
    def analyze_filesystem(cls, profile: ToolProfile, output_dir: Path, input_dir: Path) -> "ExecutionSpec":
        return cls(
            mode=ExecutionMode.ANALYZE_FILESYSTEM,
            output_dir=output_dir,
            stdout_path=output_dir / profile.stdout_filename,
            stderr_path=output_dir / profile.stderr_filename,
            input_path=input_dir,
            type_tag=FILESYSTEM_TYPE_TAG,
        )


@dataclass(slots=True)
class ExecutionOutcome:
    """Result of one run. ``exit_code`` is None when no exit status exists."""

    spec: ExecutionSpec
    state: InvocationState
    exit_code: Optional[int] = None
    duration_seconds: float = 0.0

    @classmethod
    def launch_failed(cls, spec: ExecutionSpec) -> "ExecutionOutcome":
        """Outcome for a run whose process could not be started."""
        return cls(spec=spec, state=InvocationState.LAUNCH_FAILED)

    @property
    def stdout_path(self) -> Path:
        return self.spec.stdout_path

    @property
    def stderr_path(self) -> Path:
        return self.spec.stderr_path

    @property
    def succeeded(self) -> bool:
        return self.state == InvocationState.COMPLETED and self.exit_code == 0


class ProcessTerminator:
    """Decides when a running process must be stopped (cancellation or timeout)."""

    def __init__(
        self,
        is_cancelled: Optional[Callable[[], bool]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._is_cancelled = is_cancelled
        self._timeout = timeout_seconds
        self._started: Optional[float] = None
        self.reason: Optional[str] = None

    def start(self) -> None:
        self._started = time.monotonic()
        self.reason = None

    def should_terminate(self) -> bool:
        if self._is_cancelled is not None and self._is_cancelled():
            self.reason = "cancelled"
            return True
        if self._timeout is not None and self._started is not None:
            if time.monotonic() - self._started >= self._timeout:
                self.reason = f"timeout after {self._timeout:.0f}s"
                return True
        return False


class ToolInvoker:
    """Runs a LEAPP executable for an ``ExecutionSpec``."""

    def __init__(
        self,
        executable: Path,
        environment: Optional[Mapping[str, str]] = None,
        poll_interval: float = 0.5,
        terminate_grace: float = 5.0,
    ) -> None:
        self.executable = Path(executable)
        self.environment: Dict[str, str] = dict(environment or {})
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace

    def build_command(self, spec: ExecutionSpec) -> List[str]:
        """Return argv for ``spec``; ``.py`` tools run under the current interpreter."""
        cmd: List[str] = []
        if self.executable.suffix.lower() == ".py":
            cmd.append(sys.executable)
        cmd.append(str(self.executable))

        if spec.mode == ExecutionMode.DISCOVER_PATHS:
            cmd.append("-p")
        else:
            if spec.input_path is None or not spec.type_tag:
                raise ValueError(f"{spec.mode} run requires an input path and a type tag")
            cmd.extend(["-t", spec.type_tag, "-i", str(spec.input_path), "-o", str(spec.output_dir)])
        return cmd

    def build_environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(self.environment)
        return env

    def run(self, spec: ExecutionSpec, terminator: Optional[ProcessTerminator] = None) -> ExecutionOutcome:
        """
        Run ``spec`` to completion or until ``terminator`` fires.

        Raises:
            ToolLaunchError: if the redirect files or the process cannot be created
        """
        cmd = self.build_command(spec)
        terminator = terminator or ProcessTerminator()
        LOGGER.info("Running %s: %s", spec.mode, " ".join(cmd))

        start = time.monotonic()
        try:
            spec.output_dir.mkdir(parents=True, exist_ok=True)
            with open(spec.stdout_path, "wb") as stdout, open(spec.stderr_path, "wb") as stderr:
                try:
                    process = subprocess.Popen(
                        cmd,
                        stdin=subprocess.DEVNULL,
                        stdout=stdout,
                        stderr=stderr,
                        env=self.build_environment(),
                    )
                except OSError as exc:
                    LOGGER.error("Failed to launch %s: %s", cmd[0], exc)
                    raise ToolLaunchError(spec, exc) from exc

                terminator.start()
                state = self._wait(process, terminator)
        except ToolLaunchError:
            raise
        except OSError as exc:
            LOGGER.error("Cannot prepare output files in %s: %s", spec.output_dir, exc)
            raise ToolLaunchError(spec, exc) from exc

        outcome = ExecutionOutcome(
            spec=spec,
            state=state,
            exit_code=process.returncode,
            duration_seconds=time.monotonic() - start,
        )
        if state == InvocationState.TERMINATED:
            LOGGER.info("%s run terminated (%s)", spec.mode, terminator.reason)
        elif outcome.exit_code != 0:
            LOGGER.warning(
                "%s run exited with code %s, see %s",
                spec.mode,
                outcome.exit_code,
                spec.stderr_path,
            )
        else:
            LOGGER.info("%s run completed in %.1fs", spec.mode, outcome.duration_seconds)
        return outcome

    def _wait(self, process: subprocess.Popen, terminator: ProcessTerminator) -> InvocationState:
        while True:
            try:
                process.wait(timeout=self.poll_interval)
                return InvocationState.COMPLETED
            except subprocess.TimeoutExpired:
                pass
            if terminator.should_terminate():
                self._stop(process)
                return InvocationState.TERMINATED

    def _stop(self, process: subprocess.Popen) -> None:
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace)
        except subprocess.TimeoutExpired:
            LOGGER.warning("Process %d ignored terminate, killing", process.pid)
            process.kill()
            process.wait()
