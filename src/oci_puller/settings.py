"""
Settings and configuration for oci-puller.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables once, at CLI start-up, and the
resulting object is injected into every component that needs it.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

__all__ = [
    "Settings",
    "create_settings_from_env",
    "DEFAULT_REGISTRY_URL",
    "DEFAULT_AUTH_REALM",
    "DEFAULT_AUTH_SERVICE",
    "DEFAULT_TARGET_ARCH",
]

DEFAULT_REGISTRY_URL = "https://registry-1.docker.io"
DEFAULT_AUTH_REALM = "https://auth.docker.io/token"
DEFAULT_AUTH_SERVICE = "registry.docker.io"
DEFAULT_TARGET_ARCH = "amd64"

_URL_PATTERN = re.compile(r"^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?(?:/.*)?$")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for a pull run.

    Registry Settings:
        registry_url: Base URL of the registry API (scheme + host[:port])
        auth_realm: Token service URL; empty string means anonymous pulls
        auth_service: ``service`` parameter sent to the token service

    Platform Settings:
        target_arch: Architecture selected from manifest lists / indexes
        target_variant: Optional variant (e.g. "v8") required to match as well

    HTTP Settings:
        http_proxy: Proxy URL for every outbound request
        http_timeout_s: Timeout in seconds applied to connect, read, write and pool

    Storage Settings:
        verify_digests: Verify every blob against its digest before it lands on disk
    """
    registry_url: str = DEFAULT_REGISTRY_URL
    auth_realm: str = DEFAULT_AUTH_REALM
    auth_service: str = DEFAULT_AUTH_SERVICE
    target_arch: str = DEFAULT_TARGET_ARCH
    target_variant: Optional[str] = None
    http_proxy: Optional[str] = None
    http_timeout_s: float = 30.0
    verify_digests: bool = True

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.registry_url:
            raise ValueError("registry_url is required")
        if not _URL_PATTERN.match(self.registry_url):
            raise ValueError(f"Invalid registry_url format: {self.registry_url}")

        # An empty realm is allowed and selects anonymous pulls
        if self.auth_realm and not _URL_PATTERN.match(self.auth_realm):
            raise ValueError(f"Invalid auth_realm format: {self.auth_realm}")

        if self.http_proxy and not re.match(r"^[a-z][a-z0-9+.-]*://", self.http_proxy):
            raise ValueError(f"Invalid http_proxy format: {self.http_proxy}")

        if not self.target_arch:
            raise ValueError("target_arch is required")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

    @property
    def anonymous(self) -> bool:
        """True when no token service is configured."""
        return not self.auth_realm


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - HTTP_PROXY (optional)
        - TARGETARCH (default: amd64)
        - TARGETVARIANT (optional)
        - OCI_PULLER_REGISTRY_URL (default: https://registry-1.docker.io)
        - OCI_PULLER_AUTH_REALM (default: https://auth.docker.io/token, empty for anonymous)
        - OCI_PULLER_AUTH_SERVICE (default: registry.docker.io)
        - OCI_PULLER_HTTP_TIMEOUT (default: 30.0)
        - OCI_PULLER_VERIFY (default: true)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ("true", "1", "yes", "on")

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    return Settings(
        registry_url=os.getenv("OCI_PULLER_REGISTRY_URL") or DEFAULT_REGISTRY_URL,
        auth_realm=os.getenv("OCI_PULLER_AUTH_REALM", DEFAULT_AUTH_REALM),
        auth_service=os.getenv("OCI_PULLER_AUTH_SERVICE") or DEFAULT_AUTH_SERVICE,
        target_arch=os.getenv("TARGETARCH") or DEFAULT_TARGET_ARCH,
        target_variant=os.getenv("TARGETVARIANT") or None,
        http_proxy=os.getenv("HTTP_PROXY") or None,
        http_timeout_s=get_float("OCI_PULLER_HTTP_TIMEOUT", 30.0),
        verify_digests=str_to_bool(os.getenv("OCI_PULLER_VERIFY", "true")),
    )
