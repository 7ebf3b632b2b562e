"""Pull container images from a Docker Registry V2 / OCI registry into an OCI image layout."""
__version__ = "0.1.0"

from .errors import (
    AuthError,
    BlobDownloadError,
    DigestMismatchError,
    ImagePullError,
    LayoutError,
    ManifestFetchError,
    PlatformNotFoundError,
    PullCancelled,
    PullError,
    UnknownSchemaVersionError,
    UnsupportedMediaTypeError,
)
from .puller import Puller, PullResult
from .reference import ImageReference
from .settings import Settings, create_settings_from_env

__all__ = [
    "__version__",
    "Puller",
    "PullResult",
    "ImageReference",
    "Settings",
    "create_settings_from_env",
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
