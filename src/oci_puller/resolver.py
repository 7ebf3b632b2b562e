"""
Manifest resolution.

Classifies each fetched document by ``schemaVersion`` and ``mediaType`` only,
validates it straight into the matching concrete model, and walks manifest
lists / indexes down to the single manifest for the target platform.

States::

    Fetched(raw) -> V1Concrete                      (terminal)
                 -> V2Concrete                      (terminal)
                 -> V2Index -> select entry -> Fetched(entry digest)

The same loop serves the initial tag (or digest) fetch and every digest
re-entry after a platform was selected.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import ValidationError

from .errors import (
    ManifestFetchError,
    PlatformNotFoundError,
    UnknownSchemaVersionError,
    UnsupportedMediaTypeError,
)
from .models import Descriptor, ImageIndex, ImageManifest, ManifestHeader, ManifestV1
from .settings import Settings
from .storage.manifests import FetchedManifest, ManifestFetcher
from .storage.media_types import DOCKER_MANIFEST_V1, INDEX_MEDIA_TYPES, MANIFEST_MEDIA_TYPES

logger = logging.getLogger(__name__)

__all__ = [
    "ManifestKind",
    "PlatformSelector",
    "ResolvedManifest",
    "ManifestResolver",
    "classify",
    "MAX_INDEX_DEPTH",
]

# Indexes may point at indexes; bound the walk
MAX_INDEX_DEPTH = 4

ConcreteManifest = Union[ManifestV1, ImageManifest]


class ManifestKind(str, Enum):
    V1 = "v1"
    V2_MANIFEST = "v2-manifest"
    V2_INDEX = "v2-index"


@dataclass(frozen=True)
class PlatformSelector:
    """Target platform for manifest list / index selection."""
    architecture: str
    variant: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> PlatformSelector:
        return cls(architecture=settings.target_arch, variant=settings.target_variant)

    def matches(self, entry: Descriptor) -> bool:
        if entry.platform is None or entry.platform.architecture != self.architecture:
            return False
        return self.variant is None or entry.platform.variant == self.variant

    def select(self, index: ImageIndex) -> Descriptor:
        """
        Return the first index entry for this platform.

        Raises:
            PlatformNotFoundError: If no entry matches
        """
        for entry in index.manifests:
            if self.matches(entry):
                return entry
        available = [e.platform.describe() for e in index.manifests if e.platform is not None]
        raise PlatformNotFoundError(
            f"No manifest for architecture {self}; available: {', '.join(available) or 'none'}",
            architecture=self.architecture,
            available=available,
        )

    def __str__(self) -> str:
        return f"{self.architecture}/{self.variant}" if self.variant else self.architecture


@dataclass(frozen=True)
class ResolvedManifest:
    """
    Terminal state of resolution: one concrete, single-platform manifest.

    ``fetched.raw`` holds the exact bytes that hash to ``digest``.
    ``chain`` lists the index entries selected on the way, outermost first.
    """
    kind: ManifestKind
    fetched: FetchedManifest
    manifest: ConcreteManifest
    media_type: str
    chain: Tuple[Descriptor, ...] = field(default_factory=tuple)

    @property
    def digest(self) -> str:
        return self.fetched.digest

    @property
    def raw(self) -> bytes:
        return self.fetched.raw

    @property
    def size(self) -> int:
        return self.fetched.size

    @property
    def from_index(self) -> bool:
        return bool(self.chain)


def classify(fetched: FetchedManifest) -> Tuple[ManifestKind, Optional[str]]:
    """
    Decide which concrete model a fetched document is.

    Only ``schemaVersion`` and ``mediaType`` are read. A schema 2 document
    without ``mediaType`` takes the response Content-Type instead.

    Returns:
        (kind, media_type)

    Raises:
        ManifestFetchError: If the body is not a JSON object
        UnknownSchemaVersionError: If schemaVersion is missing or not 1 / 2
        UnsupportedMediaTypeError: If a schema 2 media type is not recognised
    """
    try:
        header = ManifestHeader.model_validate_json(fetched.raw)
    except ValidationError as e:
        raise ManifestFetchError(
            f"Invalid manifest document for {fetched.repository}:{fetched.reference}: {e}"
        ) from e

    # Only a JSON integer counts; true, "2" and 2.0 are unknown versions
    version = header.schema_version if type(header.schema_version) is int else None

    if version == 1:
        return ManifestKind.V1, header.media_type or fetched.content_type or DOCKER_MANIFEST_V1

    if version != 2:
        raise UnknownSchemaVersionError(
            f"Unknown manifest schema version {header.schema_version!r} "
            f"for {fetched.repository}:{fetched.reference}",
            schema_version=header.schema_version,
        )

    media_type = header.media_type or fetched.content_type
    if media_type in INDEX_MEDIA_TYPES:
        return ManifestKind.V2_INDEX, media_type
    if media_type in MANIFEST_MEDIA_TYPES:
        return ManifestKind.V2_MANIFEST, media_type
    raise UnsupportedMediaTypeError(
        f"Unsupported manifest media type {media_type!r} for {fetched.repository}:{fetched.reference}",
        media_type=media_type,
    )


class ManifestResolver:
    """Resolve a tag or digest to one concrete manifest for the target platform."""

    def __init__(self, fetcher: ManifestFetcher, platform: PlatformSelector):
        self.fetcher = fetcher
        self.platform = platform

    def resolve(self, token: Optional[str], repository: str, reference: str) -> ResolvedManifest:
        """
        Resolve ``repository:reference``.

        Args:
            token: Bearer token (None for anonymous access)
            repository: Repository path
            reference: Tag or digest to start from

        Returns:
            ResolvedManifest for a V1 or schema 2 image manifest

        Raises:
            ManifestFetchError: On fetch or decoding failure, or indexes nested too deep
            UnknownSchemaVersionError: For schema versions other than 1 and 2
            UnsupportedMediaTypeError: For unrecognised schema 2 media types
            PlatformNotFoundError: When an index has no entry for the target platform
        """
        chain: List[Descriptor] = []
        current = reference

        while True:
            fetched = self.fetcher.fetch(token, repository, current)
            kind, media_type = classify(fetched)
            logger.debug(f"{repository}:{current} is {kind.value} ({media_type})")

            if kind is ManifestKind.V1:
                manifest = _validate(ManifestV1, fetched)
                return ResolvedManifest(kind, fetched, manifest, media_type, tuple(chain))

            if kind is ManifestKind.V2_MANIFEST:
                manifest = _validate(ImageManifest, fetched)
                return ResolvedManifest(kind, fetched, manifest, media_type, tuple(chain))

            if len(chain) >= MAX_INDEX_DEPTH:
                raise ManifestFetchError(
                    f"Manifest index nesting for {repository}:{reference} exceeds {MAX_INDEX_DEPTH} levels"
                )

            index = _validate(ImageIndex, fetched)
            entry = self.platform.select(index)
            logger.info(
                f"Selected {entry.platform.describe()} manifest {entry.digest} from {repository}:{current}"
            )
            chain.append(entry)
            current = entry.digest


def _validate(model, fetched: FetchedManifest):
    try:
        return model.model_validate_json(fetched.raw)
    except ValidationError as e:
        raise ManifestFetchError(
            f"Manifest {fetched.repository}:{fetched.reference} does not match its declared schema: {e}"
        ) from e
