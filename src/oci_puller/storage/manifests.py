"""
Manifest fetcher for the registry manifest endpoint.

Retrieves manifests as raw bytes. The raw body is the only representation kept:
it is what gets hashed, what gets persisted, and what the concrete models are
validated from.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..errors import ManifestFetchError
from ..models import Digest
from ..settings import Settings
from .auth import auth_headers
from .media_types import ACCEPTED_MANIFEST_TYPES
from .transport import Transport

logger = logging.getLogger(__name__)

__all__ = ["FetchedManifest", "ManifestFetcher", "manifest_url", "blob_url"]


def manifest_url(settings: Settings, repository: str, reference: str) -> str:
    return f"{settings.registry_url.rstrip('/')}/v2/{repository}/manifests/{reference}"


def blob_url(settings: Settings, repository: str, digest: str) -> str:
    return f"{settings.registry_url.rstrip('/')}/v2/{repository}/blobs/{digest}"


@dataclass(frozen=True)
class FetchedManifest:
    """
    A manifest exactly as the registry returned it.

    ``digest`` is computed over ``raw``; ``header_digest`` is the registry's
    ``Docker-Content-Digest`` claim, if it sent one.
    """
    repository: str
    reference: str
    raw: bytes
    content_type: str
    digest: str
    header_digest: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.raw)


class ManifestFetcher:
    """GET manifests by tag or digest with full media type negotiation."""

    def __init__(self, transport: Transport, settings: Settings):
        self.transport = transport
        self.settings = settings

    def fetch(self, token: Optional[str], repository: str, reference: str) -> FetchedManifest:
        """
        Fetch the manifest for ``repository:reference``.

        Args:
            token: Bearer token (None for anonymous access)
            repository: Repository path (e.g. "library/alpine")
            reference: Tag or digest

        Returns:
            FetchedManifest holding the raw body and its digest

        Raises:
            ManifestFetchError: On network error, non-success status, or when a
                manifest requested by digest does not hash to that digest
        """
        url = manifest_url(self.settings, repository, reference)
        headers = {"Accept": ", ".join(ACCEPTED_MANIFEST_TYPES)}
        headers.update(auth_headers(token))

        try:
            response = self.transport.get(url, headers=headers)
        except httpx.RequestError as e:
            raise ManifestFetchError(f"Network error fetching manifest {repository}:{reference}: {e}") from e

        if response.status_code != 200:
            raise ManifestFetchError(
                f"Registry returned HTTP {response.status_code} for manifest {repository}:{reference}"
            )

        raw = response.content
        content_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip()
        header_digest = response.headers.get("Docker-Content-Digest")

        requested = _digest_or_none(reference)
        algorithm = requested.algorithm if requested else "sha256"
        digest = str(Digest.of(raw, algorithm))

        if requested is not None and digest != str(requested):
            raise ManifestFetchError(
                f"Manifest {repository}@{reference} does not match its digest: got {digest}"
            )
        if header_digest and header_digest != digest:
            logger.warning(
                f"Docker-Content-Digest {header_digest} disagrees with computed digest {digest} "
                f"for {repository}:{reference}; using computed digest"
            )

        logger.debug(f"Fetched manifest {repository}:{reference} ({len(raw)} bytes, {content_type or 'no content type'})")
        return FetchedManifest(
            repository=repository,
            reference=reference,
            raw=raw,
            content_type=content_type,
            digest=digest,
            header_digest=header_digest,
        )


def _digest_or_none(reference: str) -> Optional[Digest]:
    if ":" not in reference:
        return None
    try:
        return Digest.parse(reference)
    except ValueError:
        return None
