"""Resource fetchers.

A fetcher retrieves the raw text of a resource location. The default
HttpxFetcher serves network locations through httpx and everything else from
a base URL (when configured) or a local root directory.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import urljoin

import httpx

from .errors import TransportFailure

logger = logging.getLogger(__name__)

_HTTP = re.compile(r"^https?://", re.IGNORECASE)


class ResourceFetcher(Protocol):
    """Protocol for retrieving resource text."""

    async def fetch(self, location: str) -> str:
        """Return the full text at ``location``.

        Raises:
            TransportFailure: The resource could not be retrieved
        """
        ...


class HttpxFetcher:
    """Fetch resources over HTTP(S) or from the local filesystem."""

    def __init__(
        self,
        root: str | Path = ".",
        base_url: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize fetcher.

        Args:
            root: Directory that non-network locations are read from
            base_url: If set, non-network locations are joined to it and fetched over HTTP
            timeout: HTTP timeout in seconds (ignored when a client is supplied)
            client: Optional pre-configured client (e.g. with a mock transport)
        """
        self.root = Path(root)
        self.base_url = base_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def fetch(self, location: str) -> str:
        if _HTTP.match(location):
            return await self._fetch_url(location, location)
        if location.startswith("file://"):
            return await self._read_file(Path(location[7:]), location)
        if self.base_url:
            return await self._fetch_url(urljoin(self.base_url, location), location)
        return await self._read_file(self.root / location.lstrip("/"), location)

    async def _fetch_url(self, url: str, location: str) -> str:
        logger.debug(f"Fetching {url}")
        try:
            response = await self._get_client().get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {url}: {e}")
            raise TransportFailure(location, str(e)) from e
        return response.text

    async def _read_file(self, path: Path, location: str) -> str:
        logger.debug(f"Reading {path}")
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TransportFailure(location, str(e)) from e

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def __repr__(self) -> str:
        if self.base_url:
            return f"HttpxFetcher({self.base_url})"
        return f"HttpxFetcher({self.root})"
