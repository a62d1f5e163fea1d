"""
Errors - Exception hierarchy for the variant pipeline.
"""


class ImageOptimizerError(Exception):
    """Base class for all pipeline errors."""
    pass


class ConfigError(ImageOptimizerError):
    """Raised when the optimizer configuration is invalid."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid configuration")


class InputDirectoryMissing(ImageOptimizerError):
    """Raised when the input root does not exist. Aborts a batch run."""
    pass


class SourceUnreadable(ImageOptimizerError):
    """Raised when an original is missing or its metadata cannot be read."""
    pass


class EncodeFailed(ImageOptimizerError):
    """Raised when a single variant cannot be encoded or written."""
    pass


class ManifestCorrupt(ImageOptimizerError):
    """Raised when the persisted manifest cannot be parsed."""
    pass


class TransformFailed(ImageOptimizerError):
    """Raised when an on-the-fly transform fails."""
    pass


class UnsupportedSource(SourceUnreadable):
    """Raised for originals the codec cannot decode at all (e.g. SVG)."""
    pass
