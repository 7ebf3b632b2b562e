"""
Bearer token provider for anonymous pull access.

Exchanges a repository name for a short-lived token scoped to
``repository:<name>:pull`` at the registry's token service.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Dict, Optional, Tuple

import httpx

from ..errors import AuthError
from ..settings import Settings
from .transport import Transport

logger = logging.getLogger(__name__)

__all__ = ["TokenProvider", "auth_headers", "DEFAULT_TOKEN_TTL"]

# Token lifetime assumed when the service omits expires_in
DEFAULT_TOKEN_TTL = 60
_EXPIRY_MARGIN_S = 10


class TokenProvider:
    """
    Fetch and cache pull-scoped bearer tokens.

    Tokens are cached per repository until shortly before they expire so that
    pulling several tags of one repository in a run costs one token request.
    """

    def __init__(self, transport: Transport, settings: Settings):
        self.transport = transport
        self.settings = settings
        # {repository: (token, expiry_timestamp)}
        self._token_cache: Dict[str, Tuple[str, float]] = {}

    def fetch_token(self, repository: str) -> Optional[str]:
        """
        Return a pull token for *repository*.

        Args:
            repository: Repository path (e.g. "library/alpine")

        Returns:
            The bearer token, or None when the provider is anonymous

        Raises:
            AuthError: If the token service fails or returns no token
        """
        if self.settings.anonymous:
            return None

        cached = self._token_cache.get(repository)
        if cached is not None:
            token, expiry = cached
            if time.time() < expiry - _EXPIRY_MARGIN_S:
                logger.debug(f"Reusing cached token for {repository}")
                return token

        params = {
            "service": self.settings.auth_service,
            "scope": f"repository:{repository}:pull",
        }
        try:
            response = self.transport.get(self.settings.auth_realm, params=params)
        except httpx.RequestError as e:
            raise AuthError(f"Network error fetching token for {repository}: {e}") from e

        if response.status_code != 200:
            raise AuthError(
                f"Token service returned HTTP {response.status_code} for {repository}"
            )

        try:
            envelope = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise AuthError(f"Invalid token response for {repository}: {e}") from e

        if not isinstance(envelope, dict):
            raise AuthError(f"Invalid token response for {repository}: expected a JSON object")

        token = envelope.get("token") or envelope.get("access_token")
        if not token or not isinstance(token, str):
            raise AuthError(f"Token response for {repository} has no token")

        expires_in = envelope.get("expires_in")
        if not isinstance(expires_in, (int, float)) or expires_in <= 0:
            expires_in = DEFAULT_TOKEN_TTL
        self._token_cache[repository] = (token, time.time() + expires_in)

        logger.debug(f"Obtained pull token for {repository} (expires in {expires_in}s)")
        return token


def auth_headers(token: Optional[str]) -> Dict[str, str]:
    """Authorization header for *token*, or no header for anonymous access."""
    return {"Authorization": f"Bearer {token}"} if token else {}
