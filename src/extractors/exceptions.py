"""
Exceptions for extractor modules.
"""


class ExtractorError(Exception):
    """Base exception for extractor errors."""
    pass


class MissingToolError(ExtractorError):
    """Raised when required external tool is not found."""

    def __init__(self, tool_name: str, install_hint: str = ""):
        self.tool_name = tool_name
        self.install_hint = install_hint
        message = f"Required tool '{tool_name}' not found"
        if install_hint:
            message += f"\n{install_hint}"
        super().__init__(message)


class UnsupportedPlatformError(ExtractorError):
    """Raised when the host platform cannot run the external tool."""

    def __init__(self, required: str, actual: str):
        self.required = required
        self.actual = actual
        super().__init__(f"Host platform '{actual}' is not supported (requires '{required}')")


class ManifestReadError(ExtractorError):
    """Raised when a tool path manifest exists but cannot be read."""
    pass


class ToolLaunchError(ExtractorError):
    """Raised when the external process cannot be started."""

    def __init__(self, spec, cause: BaseException):
        self.spec = spec
        self.cause = cause
        super().__init__(f"Failed to launch {spec.mode} run into {spec.output_dir}: {cause}")


class StagingError(ExtractorError):
    """Raised when the staging directory for a pass cannot be created."""
    pass
