"""
OCI image layout writer.

Owns the on-disk shape of the destination directory::

    <dir>/oci-layout            {"imageLayoutVersion":"1.0.0"}
    <dir>/index.json            index of the manifests resolved in this run
    <dir>/blobs/<algo>/<hex>    configs, layers and manifests

The layout is created once per run and never read back. Existing files at
these paths are overwritten, never merged.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from .errors import LayoutError
from .models import Digest
from .storage.media_types import (
    BLOBS_DIR,
    CONTAINERD_IMAGE_NAME_ANNOTATION,
    OCI_IMAGE_INDEX,
    OCI_INDEX_FILE,
    OCI_LAYOUT_FILE,
    OCI_LAYOUT_VERSION,
    OCI_REF_NAME_ANNOTATION,
)

logger = logging.getLogger(__name__)

__all__ = ["LayoutWriter"]


class LayoutWriter:
    """Create and populate an OCI image layout directory."""

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)
        self._manifests: List[Dict[str, object]] = []

    @property
    def index_path(self) -> Path:
        return self.root / OCI_INDEX_FILE

    @property
    def layout_path(self) -> Path:
        return self.root / OCI_LAYOUT_FILE

    def initialize(self) -> None:
        """
        Create the directory tree, the ``oci-layout`` marker and an empty index.

        Safe to call on an existing directory; a stale ``index.json`` is replaced.

        Raises:
            LayoutError: If directories or the marker cannot be written
        """
        try:
            (self.root / BLOBS_DIR / "sha256").mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LayoutError(f"Cannot create layout directory {self.root}: {e}") from e

        self._write_json(self.layout_path, {"imageLayoutVersion": OCI_LAYOUT_VERSION})
        self.write_index()
        logger.debug(f"Initialized OCI layout at {self.root}")

    def blob_path(self, digest: str) -> Path:
        """Path of the blob for *digest*: ``blobs/<algo>/<hex>``."""
        parsed = Digest.parse(digest)
        return self.root / BLOBS_DIR / parsed.algorithm / parsed.hex

    def add_manifest(self, *, digest: str, media_type: str, size: int,
                     ref_name: Optional[str] = None, image_name: Optional[str] = None) -> Dict[str, object]:
        """
        Record a resolved manifest and rewrite ``index.json``.

        Args:
            digest: Manifest digest
            media_type: Manifest media type as served by the registry
            size: Manifest size in bytes
            ref_name: Tag written as ``org.opencontainers.image.ref.name``
            image_name: Full name written as ``io.containerd.image.name``

        Returns:
            The descriptor written into the index
        """
        descriptor: Dict[str, object] = {
            "mediaType": media_type,
            "digest": digest,
            "size": size,
        }
        annotations = {}
        if image_name:
            annotations[CONTAINERD_IMAGE_NAME_ANNOTATION] = image_name
        if ref_name:
            annotations[OCI_REF_NAME_ANNOTATION] = ref_name
        if annotations:
            descriptor["annotations"] = annotations

        # Re-pulling the same name in one run replaces its entry
        self._manifests = [
            m for m in self._manifests
            if not (image_name and m.get("annotations", {}).get(CONTAINERD_IMAGE_NAME_ANNOTATION) == image_name)
        ]
        self._manifests.append(descriptor)
        self.write_index()
        return descriptor

    def write_index(self) -> None:
        """Write ``index.json`` naming every manifest recorded in this run."""
        index = {
            "schemaVersion": 2,
            "mediaType": OCI_IMAGE_INDEX,
            "manifests": self._manifests,
        }
        self._write_json(self.index_path, index)
        logger.debug(f"Wrote {self.index_path} with {len(self._manifests)} manifest(s)")

    def _write_json(self, path: Path, payload: dict) -> None:
        tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
        try:
            with open(tmp, "w", encoding="utf-8", newline="\n") as f:
                json.dump(payload, f, separators=(",", ":"), ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise LayoutError(f"Cannot write {path}: {e}") from e
