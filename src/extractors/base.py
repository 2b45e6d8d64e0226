"""
Base extractor interface for modular extraction system.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from core.case import Case
from core.data_source import DataSource
from core.enums import PassStatus

from .callbacks import ExtractorCallbacks

__version__ = "0.1.0"


@dataclass
class ExtractorMetadata:
    """
    Metadata about an extractor module.

    Attributes:
        name: Internal identifier (e.g., "ileapp")
        display_name: Display name (e.g., "iLeapp")
        description: Short description
        category: Category for grouping ("forensic_tools" | "mobile")
        requires_tools: External tools needed (e.g., ["ileapp"])
        version: Module version string
    """
    name: str
    display_name: str
    description: str
    category: str
    requires_tools: List[str]
    version: str = __version__


@dataclass
class PassResult:
    """
    Overall outcome of one extraction pass.

    ``reports`` lists every report registered during the pass, including
    those from a pass that ended cancelled.
    """
    status: PassStatus
    message: str = ""
    staging_root: Optional[Path] = None
    reports: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == PassStatus.OK


class BaseExtractor(ABC):
    """
    Base class for extractor modules.

    Each module is responsible for:
    1. Declaring capabilities and requirements (metadata)
    2. Checking it can run on this host (can_run_extraction)
    3. Running one pass over a data source (run_extraction)

    Example:
        class MyExtractor(BaseExtractor):
            @property
            def metadata(self):
                return ExtractorMetadata(
                    name="my_extractor",
                    display_name="My Extractor",
                    description="Does something useful",
                    category="forensic_tools",
                    requires_tools=["mytool"],
                )

            def can_run_extraction(self, data_source):
                return True, ""

            def run_extraction(self, data_source, case, callbacks):
                callbacks.on_step("Running mytool")
                return PassResult(PassStatus.OK)
    """

    @property
    @abstractmethod
    def metadata(self) -> ExtractorMetadata:
        """Return module metadata."""
        pass

    @abstractmethod
    def can_run_extraction(self, data_source: DataSource) -> tuple[bool, str]:
        """
        Check if extraction can run on this data source.

        Returns:
            Tuple of (can_run, reason_if_not)

        Example:
            return True, ""
            return False, "ileapp not installed"
        """
        pass

    def get_output_dir(self, case: Case, data_source: DataSource) -> Path:
        """
        Return this extractor's working directory for ``data_source``.

        Convention:
            {case}/ModuleOutput/{display_name}/
        """
        return case.module_directory / self.metadata.display_name

    @abstractmethod
    def run_extraction(
        self,
        data_source: DataSource,
        case: Case,
        callbacks: ExtractorCallbacks,
    ) -> PassResult:
        """
        Run one pass over ``data_source``.

        Responsibilities:
        - Run external tools or internal logic
        - Write output below ``get_output_dir()``
        - Report progress via callbacks
        - Handle cancellation
        - Register generated reports with the case

        Returns:
            PassResult describing the outcome
        """
        pass
