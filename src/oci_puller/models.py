"""
Data models for manifests, descriptors and digests.

These Pydantic models mirror the registry wire formats. Each concrete model is
validated directly from the raw response bytes once the resolver has picked
the variant, so no generic decoded dict is ever re-encoded.
"""
from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "Digest",
    "Platform",
    "Descriptor",
    "FsLayer",
    "V1History",
    "ManifestV1",
    "ImageManifest",
    "ImageIndex",
    "ManifestHeader",
]

# Hex length per supported algorithm
_ALGORITHMS = {"sha256": 64, "sha512": 128}
_DIGEST_RE = re.compile(r"^([a-z0-9]+(?:[.+_-][a-z0-9]+)*):([a-fA-F0-9]+)$")


@dataclass(frozen=True)
class Digest:
    """A parsed content digest ``<algorithm>:<hex>``."""
    algorithm: str
    hex: str

    @classmethod
    def parse(cls, value: str) -> Digest:
        """
        Parse and validate a digest string.

        Raises:
            ValueError: If the format, algorithm or hex length is invalid
        """
        match = _DIGEST_RE.match(value or "")
        if not match:
            raise ValueError(f"Invalid digest format: {value!r}")
        algorithm, hex_part = match.group(1), match.group(2).lower()
        expected_len = _ALGORITHMS.get(algorithm)
        if expected_len is None:
            raise ValueError(f"Unsupported digest algorithm: {algorithm}")
        if len(hex_part) != expected_len:
            raise ValueError(
                f"Invalid {algorithm} digest length: expected {expected_len} hex chars, got {len(hex_part)}"
            )
        return cls(algorithm=algorithm, hex=hex_part)

    @classmethod
    def of(cls, data: bytes, algorithm: str = "sha256") -> Digest:
        """Compute the digest of *data*."""
        return cls(algorithm=algorithm, hex=hashlib.new(algorithm, data).hexdigest())

    def hasher(self):
        """Return a fresh hashlib object for this digest's algorithm."""
        return hashlib.new(self.algorithm)

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.hex}"


class _WireModel(BaseModel):
    """Base for wire-format models: camelCase aliases, unknown fields ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Platform(_WireModel):
    """Platform of a manifest list / index entry."""
    architecture: str
    os: str = ""
    variant: Optional[str] = None

    def describe(self) -> str:
        arch = f"{self.architecture}/{self.variant}" if self.variant else self.architecture
        return f"{self.os}/{arch}" if self.os else arch


class Descriptor(_WireModel):
    """Content descriptor used for configs, layers and index entries."""
    media_type: str = Field(default="", alias="mediaType")
    digest: str
    size: Optional[int] = None
    annotations: Dict[str, str] = Field(default_factory=dict)
    platform: Optional[Platform] = None

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        return str(Digest.parse(v))


class FsLayer(_WireModel):
    blob_sum: str = Field(alias="blobSum")

    @field_validator("blob_sum")
    @classmethod
    def validate_blob_sum(cls, v: str) -> str:
        return str(Digest.parse(v))


class V1History(_WireModel):
    v1_compatibility: str = Field(default="", alias="v1Compatibility")


class ManifestV1(_WireModel):
    """
    Docker image manifest, schema version 1.

    ``fsLayers`` is kept in registry order (newest layer first). History
    entries are opaque and only counted.
    """
    schema_version: int = Field(alias="schemaVersion")
    name: str = ""
    tag: str = ""
    architecture: str = ""
    fs_layers: List[FsLayer] = Field(default_factory=list, alias="fsLayers")
    history: List[V1History] = Field(default_factory=list)

    @property
    def blob_sums(self) -> List[str]:
        return [layer.blob_sum for layer in self.fs_layers]


class ImageManifest(_WireModel):
    """
    Schema 2 image manifest (Docker V2 or OCI).

    Follows the OCI Image Manifest Specification
    https://github.com/opencontainers/image-spec/blob/main/manifest.md
    """
    schema_version: int = Field(alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    config: Descriptor
    layers: List[Descriptor] = Field(default_factory=list)
    annotations: Dict[str, str] = Field(default_factory=dict)


class ImageIndex(_WireModel):
    """Schema 2 manifest list (Docker) or image index (OCI)."""
    schema_version: int = Field(alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    manifests: List[Descriptor] = Field(default_factory=list)
    annotations: Dict[str, str] = Field(default_factory=dict)


class ManifestHeader(_WireModel):
    """
    The two fields that decide which concrete model a document is.

    Both are optional here; the resolver decides what a missing value means.
    """
    schema_version: Any = Field(default=None, alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
