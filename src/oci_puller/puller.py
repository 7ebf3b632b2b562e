"""
oci-puller pipeline.

This module implements the pull() and pull_all() operations: token, manifest
resolution, then one blob download per config and layer, with the result laid
out as an OCI image layout.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from .errors import ImagePullError
from .layout import LayoutWriter
from .models import ImageManifest, ManifestV1
from .reference import ImageReference
from .resolver import ManifestKind, ManifestResolver, PlatformSelector, ResolvedManifest
from .settings import Settings
from .storage.auth import TokenProvider
from .storage.blobs import BlobStoreWriter, StoredBlob
from .storage.manifests import ManifestFetcher
from .storage.transport import Transport

logger = logging.getLogger(__name__)

__all__ = ["Puller", "PullResult"]


@dataclass(frozen=True)
class PullResult:
    """
    Outcome of pulling one image.

    ``manifest_blob`` is None for schema 1 images, which have no place in an
    OCI layout index.
    """
    image: str
    reference: ImageReference
    resolved: ResolvedManifest
    manifest_blob: Optional[StoredBlob] = None
    config_blob: Optional[StoredBlob] = None
    layer_blobs: List[StoredBlob] = field(default_factory=list)

    @property
    def digest(self) -> str:
        return self.resolved.digest

    @property
    def blobs(self) -> List[StoredBlob]:
        """Every blob written for this image, manifest first."""
        head = [b for b in (self.manifest_blob, self.config_blob) if b is not None]
        return head + list(self.layer_blobs)

    @property
    def total_size(self) -> int:
        return sum(b.size for b in self.blobs)


class Puller:
    """
    Pull images into one OCI layout directory.

    Components are built once from Settings around a single Transport and can
    be injected individually for testing.
    """

    def __init__(self, dest: str | Path, settings: Settings, *,
                 transport: Optional[Transport] = None,
                 tokens: Optional[TokenProvider] = None,
                 resolver: Optional[ManifestResolver] = None,
                 layout: Optional[LayoutWriter] = None,
                 blobs: Optional[BlobStoreWriter] = None):
        self.settings = settings
        self.transport = transport or Transport(settings)
        self.layout = layout or LayoutWriter(dest)
        self.tokens = tokens or TokenProvider(self.transport, settings)
        self.resolver = resolver or ManifestResolver(
            ManifestFetcher(self.transport, settings),
            PlatformSelector.from_settings(settings),
        )
        self.blobs = blobs or BlobStoreWriter(self.transport, settings, self.layout)

    def pull_all(self, images: Sequence[str]) -> List[PullResult]:
        """
        Initialize the layout and pull *images* one after another.

        Fail-fast: the first failing image stops the run.

        Raises:
            LayoutError: If the layout cannot be initialized
            ImagePullError: Wrapping the first error raised for an image
        """
        self.layout.initialize()
        results = []
        for image in images:
            try:
                results.append(self.pull(image))
            except Exception as e:
                logger.error(f"Failed to pull {image}: {e}")
                raise ImagePullError(image, e) from e
        return results

    def pull(self, image: str) -> PullResult:
        """
        Pull one image into the (already initialized) layout.

        Args:
            image: Image reference string, e.g. "alpine:3.18"

        Returns:
            PullResult listing every blob written

        Raises:
            ValueError: If the reference is malformed
            PullError: Any error from the auth, manifest or blob stages
        """
        ref = ImageReference.parse(image)
        logger.info(f"Pulling {ref}")

        token = self.tokens.fetch_token(ref.repository)
        resolved = self.resolver.resolve(token, ref.repository, ref.reference)

        if resolved.kind is ManifestKind.V1:
            return self._pull_v1(image, ref, token, resolved)
        return self._pull_v2(image, ref, token, resolved)

    def _pull_v1(self, image: str, ref: ImageReference, token: Optional[str],
                 resolved: ResolvedManifest) -> PullResult:
        manifest: ManifestV1 = resolved.manifest
        logger.info(f"Downloading '{ref.repository}' ({len(manifest.fs_layers)} layers, schema 1)")

        # One download per blobSum in document order, repeats included
        layers = [self.blobs.download(token, ref.repository, blob_sum) for blob_sum in manifest.blob_sums]
        return PullResult(image=image, reference=ref, resolved=resolved, layer_blobs=layers)

    def _pull_v2(self, image: str, ref: ImageReference, token: Optional[str],
                 resolved: ResolvedManifest) -> PullResult:
        manifest: ImageManifest = resolved.manifest
        logger.info(f"Downloading '{ref.repository}' ({len(manifest.layers)} layers)")

        manifest_blob = self.blobs.write_manifest(resolved.digest, resolved.raw)
        config_blob = self.blobs.download(token, ref.repository, manifest.config.digest)
        layers = [self.blobs.download(token, ref.repository, layer.digest) for layer in manifest.layers]

        self.layout.add_manifest(
            digest=resolved.digest,
            media_type=resolved.media_type,
            size=resolved.size,
            ref_name=ref.tag,
            image_name=ref.qualified_name(self.registry_domain),
        )
        return PullResult(
            image=image,
            reference=ref,
            resolved=resolved,
            manifest_blob=manifest_blob,
            config_blob=config_blob,
            layer_blobs=layers,
        )

    @property
    def registry_domain(self) -> str:
        """Registry host used in image names; Docker Hub is spelled docker.io."""
        host = urlparse(self.settings.registry_url).netloc
        if host in ("registry-1.docker.io", "index.docker.io", "registry.hub.docker.com"):
            return "docker.io"
        return host

    def cancel(self) -> None:
        """Abort the transfer in progress."""
        self.transport.cancel()

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
