"""
HTTP transport shared by every registry component.

One ``httpx.Client`` is built from Settings and injected everywhere, so proxy
and timeout configuration live in exactly one place.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import httpx

from .. import __version__
from ..errors import PullCancelled
from ..settings import Settings

logger = logging.getLogger(__name__)

__all__ = ["Transport", "CHUNK_SIZE"]

CHUNK_SIZE = 1024 * 1024  # 1 MiB


class Transport:
    """
    Thin wrapper around a configured ``httpx.Client``.

    Holds the proxy, timeout and cancellation event for a pull run. Requests
    return ``httpx.Response`` objects untouched; callers decide what a status
    means and map ``httpx.RequestError`` onto their own error class.
    """

    def __init__(self, settings: Settings, *,
                 transport: Optional[httpx.BaseTransport] = None,
                 cancel_event: Optional[threading.Event] = None):
        """
        Initialize the transport.

        Args:
            settings: Run settings (proxy, timeout)
            transport: Optional httpx transport override (tests use httpx.MockTransport)
            cancel_event: Event that aborts streaming transfers when set
        """
        self.settings = settings
        self.proxy = settings.http_proxy
        self.cancel_event = cancel_event or threading.Event()

        timeout = settings.http_timeout_s
        self.client = httpx.Client(
            proxy=self.proxy,
            transport=transport,
            timeout=httpx.Timeout(connect=timeout, read=timeout, write=timeout, pool=timeout),
            follow_redirects=True,
            # Proxy comes from Settings only, never re-derived from the environment
            trust_env=False,
            headers={"User-Agent": f"oci-puller/{__version__}"},
        )
        if self.proxy:
            logger.debug(f"Routing registry traffic through proxy {self.proxy}")

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None,
            params: Optional[Dict[str, str]] = None) -> httpx.Response:
        """GET *url* and return the fully read response."""
        self._check_cancelled()
        logger.debug(f"GET {url}")
        return self.client.get(url, headers=headers, params=params)

    @contextmanager
    def stream(self, url: str, *, headers: Optional[Dict[str, str]] = None) -> Iterator[httpx.Response]:
        """GET *url* as a stream; the body is read through ``iter_bytes``."""
        self._check_cancelled()
        logger.debug(f"GET (stream) {url}")
        with self.client.stream("GET", url, headers=headers) as response:
            yield response

    def iter_bytes(self, response: httpx.Response, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield body chunks, stopping with PullCancelled once cancel() was called."""
        for chunk in response.iter_bytes(chunk_size):
            self._check_cancelled()
            if chunk:
                yield chunk

    def cancel(self) -> None:
        """Abort any transfer in progress at its next chunk boundary."""
        self.cancel_event.set()

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise PullCancelled("pull cancelled")

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
