"""Auxiliary resource embedding.

Auxiliary resources (stylesheets, data files, templates) are loaded alongside
a unit but are not part of its export value. A failing embedding never fails
the unit; it only fails the unit's "fully loaded" signal.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from .errors import TransportFailure
from .fetch import ResourceFetcher

logger = logging.getLogger(__name__)


class AuxiliaryEmbedder(Protocol):
    """Protocol for applying an auxiliary resource."""

    async def embed(self, location: str) -> None:
        """Embed the resource at ``location``.

        Raises:
            TransportFailure: The resource could not be applied
        """
        ...


class FetchingEmbedder:
    """Embed auxiliary resources by fetching their text and keeping it.

    Embedded text is available in ``applied`` keyed by location, in the order
    the embeddings completed.
    """

    def __init__(self, fetcher: ResourceFetcher) -> None:
        self.fetcher = fetcher
        self.applied: dict[str, str] = {}

    async def embed(self, location: str) -> None:
        start = time.monotonic()
        try:
            text = await self.fetcher.fetch(location)
        except TransportFailure:
            raise
        except Exception as e:
            raise TransportFailure(location, str(e)) from e
        self.applied[location] = text
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug(f"{location} loaded in {elapsed_ms:.0f}ms")
