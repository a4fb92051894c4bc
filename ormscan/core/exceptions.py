"""
Custom exceptions for the ORM usage scanner.

Provides a hierarchy of exceptions for the different scan stages,
enabling precise error handling and clear failure reporting.
"""


class PipelineError(Exception):
    """Base exception for all scan-related errors."""

    def __init__(self, message: str, stage: str = None, details: dict = None):
        super().__init__(message)
        self.stage = stage
        self.details = details or {}

    def __str__(self):
        base_msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {base_msg}"
        return base_msg


class DiscoveryError(PipelineError):
    """Raised when source file discovery fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Discovery", details=details)


class AnalysisError(PipelineError):
    """Raised when static analysis fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Analysis", details=details)


class ReportingError(PipelineError):
    """Raised when writing or reading scan output fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Reporting", details=details)


class LanguageNotSupportedError(AnalysisError):
    """Raised when no grammar is available for a file."""

    def __init__(self, language: str):
        super().__init__(
            f"No grammar available for language: {language}",
            details={"language": language}
        )


class ParseError(AnalysisError):
    """Raised when a source file cannot be parsed."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Failed to parse {file_path}: {reason}",
            details={"file": file_path, "reason": reason}
        )


class TypeResolutionError(AnalysisError):
    """Raised by a type resolver that cannot answer for its host environment."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details)


class ReportFormatError(ReportingError):
    """Raised when an existing output document is malformed."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details)


class RootValidationError(DiscoveryError):
    """Raised when the scan root is not a readable directory."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Root validation failed: {reason}",
            details={"path": path, "reason": reason}
        )
