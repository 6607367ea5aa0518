"""Abstract transcript source interface.

WHY: Captions can come from more than one upstream (a managed proxy
service today, YouTube directly as a fallback). The orchestrator should
select between them without knowing how either one talks to its upstream,
so that adding a third provider does not touch any call site.

HOW: TranscriptSource is an ABC with a ``name`` property and an async
``fetch()`` method. Concrete sources own their own httpx.AsyncClient and
are used as async context managers so connections are always released,
including when the request is cancelled mid-fetch.

RULES:
- fetch() returns a FetchResult or raises TranscriptFetchError; nothing else
- Sources must be usable as: async with Source(...) as source: ...
- ``transport`` is injectable so tests can serve canned upstream responses

To add a new transcript source:
1. Create a new module in adapters/
2. Subclass TranscriptSource
3. Implement name and fetch()
4. Wire it into the orchestrator in server/pipeline.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from yt_cleaner.config import HTTP_TIMEOUT_S
from yt_cleaner.core.models import FetchResult


class TranscriptSource(ABC):
    """Base class for transcript sources backed by an httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = HTTP_TIMEOUT_S,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._transport = transport
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> Any:
        kwargs: Dict[str, Any] = {
            "base_url": self._base_url,
            "headers": self._headers,
            "timeout": httpx.Timeout(self._timeout, connect=10.0),
            "follow_redirects": True,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.AsyncClient(**kwargs)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "{} must be used as an async context manager: "
                "async with {}() as source: ...".format(
                    type(self).__name__, type(self).__name__
                )
            )
        return self._client

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name used in logs and error context."""

    @abstractmethod
    async def fetch(
        self,
        video_id: str,
        credential: Optional[str] = None,
    ) -> FetchResult:
        """Fetch the caption cues for ``video_id``.

        Args:
            video_id: Canonical YouTube video identifier.
            credential: Provider credential, for sources that need one.

        Returns:
            FetchResult with the cues in caption order.

        Raises:
            TranscriptFetchError: tagged with the failure kind.
        """
