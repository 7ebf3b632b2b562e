"""
Content-addressed blob writer.

Streams blobs from the registry blob endpoint into ``blobs/<algo>/<hex>``.
Every write goes through a temporary file in the same directory that is
renamed into place only after the bytes were verified, so a failed or
cancelled transfer never leaves a partial blob under a digest name.
"""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import httpx

from ..errors import BlobDownloadError, DigestMismatchError
from ..layout import LayoutWriter
from ..models import Digest
from ..settings import Settings
from .auth import auth_headers
from .manifests import blob_url
from .transport import Transport

logger = logging.getLogger(__name__)

__all__ = ["StoredBlob", "BlobStoreWriter"]


@dataclass(frozen=True)
class StoredBlob:
    """A blob that landed in the layout."""
    digest: str
    path: Path
    size: int


class BlobStoreWriter:
    """Download blobs by digest and persist them byte-for-byte."""

    def __init__(self, transport: Transport, settings: Settings, layout: LayoutWriter):
        self.transport = transport
        self.settings = settings
        self.layout = layout

    def download(self, token: Optional[str], repository: str, digest: str) -> StoredBlob:
        """
        Download blob *digest* from *repository* into the layout.

        Args:
            token: Bearer token (None for anonymous access)
            repository: Repository path
            digest: Blob digest (e.g. "sha256:abc...")

        Returns:
            StoredBlob describing the written file

        Raises:
            BlobDownloadError: On network error, non-success status or I/O error
            DigestMismatchError: If verification is on and the bytes do not match
            PullCancelled: If the transport was cancelled mid-transfer
        """
        expected = _parse_digest(digest)
        url = blob_url(self.settings, repository, digest)

        try:
            with self.transport.stream(url, headers=auth_headers(token)) as response:
                if response.status_code != 200:
                    raise BlobDownloadError(
                        f"Registry returned HTTP {response.status_code} for blob {repository}@{digest}"
                    )
                stored = self._write(expected, self.transport.iter_bytes(response))
        except httpx.RequestError as e:
            raise BlobDownloadError(f"Network error downloading blob {repository}@{digest}: {e}") from e

        logger.info(f"Stored blob {digest} ({stored.size} bytes)")
        return stored

    def write_manifest(self, digest: str, raw: bytes) -> StoredBlob:
        """
        Persist a manifest under its digest from the exact bytes received.

        The bytes must never be decoded and re-encoded first: key order,
        whitespace and number formatting all feed the digest.

        Raises:
            DigestMismatchError: If verification is on and *raw* does not match
            BlobDownloadError: On I/O error
        """
        stored = self._write(_parse_digest(digest), [raw])
        logger.info(f"Stored manifest {digest} ({stored.size} bytes)")
        return stored

    def _write(self, expected: Digest, chunks: Iterable[bytes]) -> StoredBlob:
        """Write *chunks* to a temp file, verify, then rename onto the digest path."""
        target = self.layout.blob_path(str(expected))
        hasher = expected.hasher()
        size = 0

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=".tmp-", dir=target.parent)
        except OSError as e:
            raise BlobDownloadError(f"Cannot create blob file for {expected}: {e}") from e
        temp_path = Path(temp_name)

        replaced = False
        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in chunks:
                    hasher.update(chunk)
                    out.write(chunk)
                    size += len(chunk)

            actual = f"{expected.algorithm}:{hasher.hexdigest()}"
            if self.settings.verify_digests and actual != str(expected):
                raise DigestMismatchError(
                    f"Digest mismatch for blob {expected}: got {actual}",
                    expected=str(expected),
                    actual=actual,
                )

            os.replace(temp_path, target)
            replaced = True
        except OSError as e:
            raise BlobDownloadError(f"Cannot write blob {expected}: {e}") from e
        finally:
            # Any exit before the rename, interrupts included, drops the temp file
            if not replaced:
                _discard(temp_path)

        return StoredBlob(digest=str(expected), path=target, size=size)


def _parse_digest(digest: str) -> Digest:
    try:
        return Digest.parse(digest)
    except ValueError as e:
        raise BlobDownloadError(str(e)) from e


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
