"""
Image reference parsing.

Turns the user-supplied ``name[:tag][@digest]`` strings into the repository
path and manifest reference used against the registry API.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import Digest

__all__ = ["ImageReference", "DEFAULT_TAG", "OFFICIAL_NAMESPACE"]

DEFAULT_TAG = "latest"
OFFICIAL_NAMESPACE = "library"

# Repository path components and tags as registries accept them
_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|[-]+)[a-z0-9]+)*$")
_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


@dataclass(frozen=True)
class ImageReference:
    """
    A parsed image reference.

    When a digest is present it is what gets resolved, and the tag is only
    carried along for naming. ``tag`` is None for digest-only references so
    they are never mistaken for ``latest``.
    """
    repository: str
    tag: Optional[str] = DEFAULT_TAG
    digest: Optional[str] = None

    @classmethod
    def parse(cls, ref_str: str) -> ImageReference:
        """
        Parse an image reference string.

        Supports formats:
        - "alpine" -> library/alpine:latest
        - "alpine:3.18" -> library/alpine:3.18
        - "bitnami/redis:7.2" -> bitnami/redis:7.2
        - "alpine@sha256:<hex>" -> library/alpine pinned by digest, no tag
        - "alpine:3.18@sha256:<hex>" -> digest authoritative, tag kept for naming

        Raises:
            ValueError: If ref_str format is invalid
        """
        ref_str = (ref_str or "").strip()
        if not ref_str:
            raise ValueError("Image reference cannot be empty")

        name, digest = ref_str, None
        if "@" in ref_str:
            name, digest_str = ref_str.split("@", 1)
            digest = str(Digest.parse(digest_str))

        tag = None if digest else DEFAULT_TAG
        # A colon after the last slash separates the tag
        last_slash = name.rfind("/")
        colon = name.rfind(":")
        if colon > last_slash:
            name, tag = name[:colon], name[colon + 1:]
            if not _TAG_RE.match(tag):
                raise ValueError(f"Invalid tag {tag!r} in image reference: {ref_str}")

        if not name:
            raise ValueError(f"Image reference has no repository name: {ref_str}")

        components = name.split("/")
        for component in components:
            if not _COMPONENT_RE.match(component):
                raise ValueError(f"Invalid repository name {name!r} in image reference: {ref_str}")

        if len(components) == 1:
            name = f"{OFFICIAL_NAMESPACE}/{name}"

        return cls(repository=name, tag=tag, digest=digest)

    @property
    def reference(self) -> str:
        """The manifest reference to resolve: the digest when pinned, else the tag."""
        return self.digest or self.tag

    def qualified_name(self, domain: str = "docker.io") -> str:
        """
        Fully qualified name used for annotations.

        e.g. ``docker.io/library/alpine:3.18``, ``docker.io/library/alpine@sha256:<hex>``
        or ``docker.io/library/alpine:3.18@sha256:<hex>`` when both were given.
        """
        name = f"{domain}/{self.repository}"
        if self.tag:
            name = f"{name}:{self.tag}"
        if self.digest:
            name = f"{name}@{self.digest}"
        return name

    def __str__(self) -> str:
        if self.digest:
            return f"{self.repository}@{self.digest}"
        return f"{self.repository}:{self.tag}"
