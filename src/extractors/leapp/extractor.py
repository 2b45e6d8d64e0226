"""LEAPP analyzer extractor: one pass of iLEAPP/ALEAPP over a data source."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from core.case import Case
from core.config import LeappConfig
from core.data_source import DataSource
from core.enums import InvocationState, PassStatus
from core.file_index import FileIndex
from core.logging import get_logger
from core.tool_discovery import ToolNotFoundError, locate_executable

from ..base import BaseExtractor, ExtractorMetadata, PassResult
from ..callbacks import ExtractorCallbacks
from ..exceptions import (
    ManifestReadError,
    MissingToolError,
    StagingError,
    ToolLaunchError,
    UnsupportedPlatformError,
)
from .invoker import ExecutionOutcome, ExecutionSpec, ProcessTerminator, ToolInvoker
from .locator import find_logical_candidates, find_manifest_entries
from .manifest import load_manifest
from .profiles import ILEAPP, ToolProfile
from .reports import harvest_report
from .staging import materialize_entries

LOGGER = get_logger("extractors.leapp")

TIMESTAMP_FORMAT = "%Y-%m-%d %H-%M-%S UTC"


def timestamped_output_dir(parent: Path, now: Optional[datetime] = None) -> Path:
    """
    Create and return a fresh ``YYYY-MM-DD HH-MM-SS UTC`` directory under ``parent``.

    Several runs within the same second get ``_1``, ``_2``... suffixes.
    """
    stamp = (now or datetime.now(tz=timezone.utc)).strftime(TIMESTAMP_FORMAT)
    candidate = parent / stamp
    counter = 0
    while True:
        try:
            candidate.mkdir(parents=True, exist_ok=False)
            return candidate
        except FileExistsError:
            counter += 1
            candidate = parent / f"{stamp}_{counter}"


class LeappExtractor(BaseExtractor):
    """
    Runs a LEAPP tool over one data source.

    Workflow:
    1. Discovery: ``<tool> -p`` writes the path manifest into ``fs_<id>``
    2. Image data sources: manifest paths are located in the file index and
       copied into ``fs_<id>``, then one filesystem analysis runs over it
    3. Logical data sources: every archive is analyzed on its own, then one
       filesystem analysis runs over ``fs_<id>``
    4. Each analysis writes into its own timestamped directory and its
       ``index.html`` is registered with the case

    Per-file and per-run failures are logged and the pass continues; only a
    wrong platform, a missing executable, an unusable staging root or a
    failed discovery end the pass with an error.
    """

    def __init__(
        self,
        profile: ToolProfile = ILEAPP,
        config: Optional[LeappConfig] = None,
        file_index: Optional[FileIndex] = None,
        tool_paths: Optional[Dict[str, Path]] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.profile = profile
        self.config = config or LeappConfig(tool=profile.tool_name)
        self.file_index = file_index
        self.tool_paths = tool_paths or {}
        self.platform = platform or sys.platform

    @property
    def metadata(self) -> ExtractorMetadata:
        return ExtractorMetadata(
            name=self.profile.tool_name,
            display_name=self.profile.display_name,
            description=f"Runs {self.profile.display_name} over extracted mobile artifacts",
            category="forensic_tools",
            requires_tools=[self.profile.tool_name],
        )

    def can_run_extraction(self, data_source: DataSource) -> tuple[bool, str]:
        try:
            self._check_platform()
            self.resolve_executable()
        except (UnsupportedPlatformError, MissingToolError) as exc:
            return False, str(exc)
        return True, ""

    def resolve_executable(self) -> Path:
        """
        Return the tool executable.

        Raises:
            MissingToolError: if no usable executable was found
        """
        try:
            return locate_executable(
                self.profile.tool_name,
                override=self.config.executable,
                tool_paths=self.tool_paths,
                candidates=self.profile.executable_candidates,
            )
        except ToolNotFoundError as exc:
            raise MissingToolError(self.profile.tool_name, self.profile.install_hint) from exc

    def _check_platform(self) -> None:
        if not self.config.platform_supported(self.platform):
            raise UnsupportedPlatformError(self.config.required_platform or "", self.platform)

    def staging_root(self, case: Case, data_source: DataSource) -> Path:
        return self.get_output_dir(case, data_source) / f"{self.profile.staging_prefix}{data_source.id}"

    def run_extraction(
        self,
        data_source: DataSource,
        case: Case,
        callbacks: ExtractorCallbacks,
    ) -> PassResult:
        """Run one full pass. Exactly one completion message is posted."""
        name = self.profile.display_name
        callbacks.on_step(f"Starting {name}")

        if callbacks.is_cancelled():
            return self._finish(callbacks, PassResult(PassStatus.CANCELLED, f"{name} run was canceled"))

        try:
            self._check_platform()
            executable = self.resolve_executable()
        except (UnsupportedPlatformError, MissingToolError) as exc:
            LOGGER.error("%s cannot run: %s", name, exc)
            callbacks.on_error(f"{name} cannot run", str(exc))
            return self._finish(callbacks, PassResult(PassStatus.ERROR, str(exc)))

        staging_root = self.staging_root(case, data_source)
        try:
            self._create_staging_root(staging_root)
        except StagingError as exc:
            callbacks.on_error(f"Error creating {name} module output directory", str(exc))
            return self._finish(callbacks, PassResult(PassStatus.ERROR, str(exc)))

        result = PassResult(PassStatus.OK, f"{name} Processing Completed", staging_root=staging_root)
        invoker = ToolInvoker(
            executable,
            environment=self.config.environment,
            poll_interval=self.config.poll_interval_seconds,
            terminate_grace=self.config.terminate_grace_seconds,
        )

        callbacks.on_step(f"Running {name} path discovery")
        try:
            discovery = invoker.run(ExecutionSpec.discover_paths(self.profile, staging_root), self._terminator(callbacks))
        except ToolLaunchError as exc:
            callbacks.on_error(f"Error running {name}, see log file.", str(exc))
            return self._finish(callbacks, PassResult(PassStatus.ERROR, str(exc), staging_root=staging_root))

        if discovery.state == InvocationState.TERMINATED:
            return self._finish(callbacks, self._cancelled(result))
        if discovery.exit_code != 0:
            # The manifest may still be usable; carry on with whatever was written.
            callbacks.on_log(f"{name} path discovery exited with code {discovery.exit_code}", "warning")

        try:
            patterns = load_manifest(discovery.stdout_path, self.profile.banner)
        except ManifestReadError as exc:
            LOGGER.error("%s", exc)
            callbacks.on_error(f"Error running {name}, see log file.", str(exc))
            return self._finish(callbacks, PassResult(PassStatus.ERROR, str(exc), staging_root=staging_root))

        callbacks.on_progress(0, 0, f"Running {name}")
        index = self.file_index or FileIndex(case.conn)
        if data_source.is_logical:
            self._run_logical(data_source, case, index, invoker, staging_root, callbacks, result)
        else:
            self._run_image(data_source, case, index, invoker, patterns, staging_root, callbacks, result)
        return self._finish(callbacks, result)

    def _run_image(self, data_source, case, index, invoker, patterns, staging_root, callbacks, result) -> None:
        callbacks.on_step(f"Extracting {len(patterns)} manifest path(s)")
        entries = find_manifest_entries(index, data_source, patterns, callbacks.is_cancelled)
        callbacks.switch_to_determinate(len(entries))

        def _advance(count, entry):
            callbacks.on_progress(count, len(entries), entry.name)

        summary = materialize_entries(data_source, entries, staging_root, callbacks.is_cancelled, _advance)
        if summary.cancelled or callbacks.is_cancelled():
            self._cancelled(result)
            return
        self._analyze_filesystem(data_source, case, invoker, staging_root, callbacks, result)

    def _run_logical(self, data_source, case, index, invoker, staging_root, callbacks, result) -> None:
        candidates = find_logical_candidates(index, data_source, self.profile.archive_markers)
        callbacks.switch_to_determinate(len(candidates))

        processed = 0
        for entry in candidates:
            if callbacks.is_cancelled():
                self._cancelled(result)
                return
            callbacks.on_progress(processed, len(candidates), f"{self.profile.display_name}: {entry.name}")
            output_dir = self._new_output_dir(case, data_source, callbacks)
            if output_dir is not None:
                spec = ExecutionSpec.analyze_file(
                    self.profile, output_dir, Path(entry.local_abs_path), entry.extension
                )
                outcome = self._run_analysis(invoker, spec, callbacks)
                self._harvest(case, output_dir, result)
                if outcome.state == InvocationState.TERMINATED:
                    self._cancelled(result)
                    return
            processed += 1
            callbacks.on_progress(processed, len(candidates), entry.name)

        if callbacks.is_cancelled():
            self._cancelled(result)
            return
        # The collection may itself be an extracted filesystem, so analyze it as one too.
        self._analyze_filesystem(data_source, case, invoker, staging_root, callbacks, result)

    def _analyze_filesystem(self, data_source, case, invoker, staging_root, callbacks, result) -> None:
        callbacks.on_step(f"Running {self.profile.display_name} over {staging_root.name}")
        output_dir = self._new_output_dir(case, data_source, callbacks)
        if output_dir is None:
            return
        spec = ExecutionSpec.analyze_filesystem(self.profile, output_dir, staging_root)
        outcome = self._run_analysis(invoker, spec, callbacks)
        self._harvest(case, output_dir, result)
        if outcome.state == InvocationState.TERMINATED:
            self._cancelled(result)

    def _run_analysis(
        self,
        invoker: ToolInvoker,
        spec: ExecutionSpec,
        callbacks: ExtractorCallbacks,
    ) -> ExecutionOutcome:
        try:
            outcome = invoker.run(spec, self._terminator(callbacks))
        except ToolLaunchError as exc:
            callbacks.on_log(f"Error running {self.profile.display_name}, see log file: {exc}", "warning")
            return ExecutionOutcome.launch_failed(spec)
        if outcome.state == InvocationState.COMPLETED and outcome.exit_code != 0:
            callbacks.on_log(
                f"{self.profile.display_name} exited with code {outcome.exit_code} for {spec.input_path}",
                "warning",
            )
        return outcome

    def _harvest(self, case: Case, output_dir: Path, result: PassResult) -> None:
        artifact = harvest_report(
            case,
            output_dir,
            self.profile.module_name,
            self.profile.report_display_name,
            self.profile.report_filename,
        )
        if artifact is not None:
            result.reports.append(artifact)

    def _new_output_dir(self, case: Case, data_source: DataSource, callbacks: ExtractorCallbacks) -> Optional[Path]:
        try:
            return timestamped_output_dir(self.get_output_dir(case, data_source))
        except OSError as exc:
            LOGGER.warning("Cannot create %s output directory: %s", self.profile.display_name, exc)
            callbacks.on_log(f"Error creating {self.profile.display_name} output directory: {exc}", "warning")
            return None

    def _terminator(self, callbacks: ExtractorCallbacks) -> ProcessTerminator:
        return ProcessTerminator(callbacks.is_cancelled, self.config.timeout_seconds)

    @staticmethod
    def _create_staging_root(staging_root: Path) -> None:
        try:
            staging_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.error("Error creating output directory %s: %s", staging_root, exc)
            raise StagingError(f"Cannot create {staging_root}: {exc}") from exc

    def _cancelled(self, result: PassResult) -> PassResult:
        LOGGER.info("%s pass cancelled", self.profile.display_name)
        result.status = PassStatus.CANCELLED
        result.message = f"{self.profile.display_name} run was canceled"
        return result

    def _finish(self, callbacks: ExtractorCallbacks, result: PassResult) -> PassResult:
        callbacks.post_message(self.profile.display_name, result.message)
        return result
