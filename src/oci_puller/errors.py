"""
Pull error classes.

Provides a clear taxonomy of errors that can occur while pulling an image.
Registry HTTP failures and local I/O failures are mapped onto these classes at
the component that detects them, so callers and the CLI can handle every
failure through one hierarchy.
"""
from __future__ import annotations


class PullError(Exception):
    """Base class for all pull errors."""
    pass


class AuthError(PullError):
    """
    Token service error.

    Raised when:
    - The token endpoint returns a non-success status
    - The response body is not the expected ``{"token": ...}`` envelope
    - The token endpoint cannot be reached
    """
    pass


class ManifestFetchError(PullError):
    """
    Manifest could not be retrieved or decoded.

    Raised when:
    - The manifest endpoint returns a non-success status
    - The body is not valid JSON or does not match its declared schema
    - A manifest fetched by digest does not hash to that digest
    """
    pass


class UnknownSchemaVersionError(PullError):
    """Manifest ``schemaVersion`` is missing or neither 1 nor 2."""

    def __init__(self, message: str, schema_version: object = None):
        super().__init__(message)
        self.schema_version = schema_version


class UnsupportedMediaTypeError(PullError):
    """Schema 2 document with a media type that is neither a manifest nor an index."""

    def __init__(self, message: str, media_type: str | None = None):
        super().__init__(message)
        self.media_type = media_type


class PlatformNotFoundError(PullError):
    """
    No manifest list / index entry matches the target platform.

    Terminal and non-retryable: the image simply is not published for it.
    """

    def __init__(self, message: str, architecture: str, available: list[str] | None = None):
        super().__init__(message)
        self.architecture = architecture
        self.available = available or []


class BlobDownloadError(PullError):
    """
    Blob download or persistence failed.

    Raised when:
    - The blob endpoint returns a non-success status
    - The connection fails mid-stream
    - The blob cannot be written to the layout
    """
    pass


class DigestMismatchError(BlobDownloadError):
    """
    Content digest validation failed.

    Raised when bytes received for a digest-addressed blob hash to a different
    digest than the one requested.
    """

    def __init__(self, message: str, expected: str | None = None, actual: str | None = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class LayoutError(PullError):
    """Local I/O error while creating the OCI layout directories or files."""
    pass


class PullCancelled(PullError):
    """The caller cancelled a transfer in progress."""
    pass


class ImagePullError(PullError):
    """
    Wraps the first failure encountered while pulling one image.

    The underlying error is available both as ``cause`` and as ``__cause__``.
    """

    def __init__(self, image: str, cause: BaseException):
        super().__init__(f"failed to process image {image}: {cause}")
        self.image = image
        self.cause = cause


__all__ = [
    "PullError",
    "AuthError",
    "ManifestFetchError",
    "UnknownSchemaVersionError",
    "UnsupportedMediaTypeError",
    "PlatformNotFoundError",
    "BlobDownloadError",
    "DigestMismatchError",
    "LayoutError",
    "PullCancelled",
    "ImagePullError",
]
