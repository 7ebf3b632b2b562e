"""
OCI and Docker media types and layout constants.

Single source of truth for every media type the puller negotiates or writes.
"""
from __future__ import annotations

# OCI image-spec types
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_IMAGE_INDEX = "application/vnd.oci.image.index.v1+json"

# Docker distribution types
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_MANIFEST_V1 = "application/vnd.docker.distribution.manifest.v1+json"
DOCKER_MANIFEST_V1_SIGNED = "application/vnd.docker.distribution.manifest.v1+prettyjws"

# Types sent in the Accept header, most specific first
ACCEPTED_MANIFEST_TYPES = [
    OCI_IMAGE_MANIFEST,
    OCI_IMAGE_INDEX,
    DOCKER_MANIFEST_V2,
    DOCKER_MANIFEST_LIST_V2,
    DOCKER_MANIFEST_V1,
    DOCKER_MANIFEST_V1_SIGNED,
]

# Schema 2 dispatch tables
INDEX_MEDIA_TYPES = frozenset({OCI_IMAGE_INDEX, DOCKER_MANIFEST_LIST_V2})
MANIFEST_MEDIA_TYPES = frozenset({OCI_IMAGE_MANIFEST, DOCKER_MANIFEST_V2})

# OCI image layout
OCI_LAYOUT_FILE = "oci-layout"
OCI_LAYOUT_VERSION = "1.0.0"
OCI_INDEX_FILE = "index.json"
BLOBS_DIR = "blobs"

# Annotations written into index.json
OCI_REF_NAME_ANNOTATION = "org.opencontainers.image.ref.name"
CONTAINERD_IMAGE_NAME_ANNOTATION = "io.containerd.image.name"


__all__ = [
    "OCI_IMAGE_MANIFEST",
    "OCI_IMAGE_INDEX",
    "DOCKER_MANIFEST_V2",
    "DOCKER_MANIFEST_LIST_V2",
    "DOCKER_MANIFEST_V1",
    "DOCKER_MANIFEST_V1_SIGNED",
    "ACCEPTED_MANIFEST_TYPES",
    "INDEX_MEDIA_TYPES",
    "MANIFEST_MEDIA_TYPES",
    "OCI_LAYOUT_FILE",
    "OCI_LAYOUT_VERSION",
    "OCI_INDEX_FILE",
    "BLOBS_DIR",
    "OCI_REF_NAME_ANNOTATION",
    "CONTAINERD_IMAGE_NAME_ANNOTATION",
]
