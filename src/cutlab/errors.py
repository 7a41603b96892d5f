"""
Error types raised across cutlab.
"""


class CutlabError(Exception):
    """Base class for every error cutlab raises on purpose."""


class ConfigurationError(CutlabError):
    """Missing credentials or environment settings."""


class ValidationError(CutlabError):
    """Bad input from the caller (no file, out-of-range breakpoint, ...)."""


class UploadInProgressError(ValidationError):
    """Submission attempted while a track is still uploading."""

    def __init__(self, message: str = "Please wait for all files to finish uploading") -> None:
        super().__init__(message)


class DurationProbeError(CutlabError):
    """The media layer could not report a duration for a file."""


class StorageError(CutlabError):
    """Bucket listing, bucket creation, upload or download failed."""


class MetadataError(StorageError):
    """Breakpoint metadata could not be stored. Never fails the main upload."""


class ExternalApiError(CutlabError):
    """Non-2xx answer from the processing API or the upload endpoint."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(CutlabError):
    """Transport-level failure talking to a remote service."""
