"""
Reads page content from a MediaWiki action API.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog

from wandascore.config.config import WikiConfig
from wandascore.exceptions import ContentSourceError
from wandascore.models import PageRecord

logger = structlog.get_logger(__name__)


class MediaWikiContentSource:
    """Resolves page titles to ``PageRecord`` objects via ``action=query``."""

    def __init__(self, config: WikiConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            headers={"User-Agent": self.config.user_agent},
            transport=self._transport,
            follow_redirects=True,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_page(self, title: str) -> Optional[PageRecord]:
        """
        Fetch the latest revision of a page.

        Returns:
            The page, with ``content=None`` when it has no revision text, or
            None when the title is invalid or the page does not exist.

        Raises:
            ContentSourceError: if the wiki cannot be queried.
        """
        if not title or not title.strip():
            return None
        if self._client is None:
            await self.initialize()
        assert self._client is not None

        params = {
            "action": "query",
            "format": "json",
            "formatversion": "2",
            "titles": title.strip(),
            "prop": "revisions|info",
            "rvprop": "content",
            "rvslots": "main",
            "inprop": "url",
        }
        try:
            response = await self._client.get(self.config.api_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise ContentSourceError(f"Failed to query wiki for '{title}': {e}") from e
        except ValueError as e:
            raise ContentSourceError(f"Wiki returned invalid JSON for '{title}'") from e

        if "error" in payload:
            raise ContentSourceError(f"Wiki API error: {payload['error'].get('info', payload['error'])}")

        pages = payload.get("query", {}).get("pages", [])
        if not pages:
            return None
        return self._to_record(pages[0])

    @staticmethod
    def _to_record(page: Dict[str, Any]) -> Optional[PageRecord]:
        if page.get("missing") or page.get("invalid") or "pageid" not in page:
            logger.debug("Page does not exist", title=page.get("title"))
            return None

        content: Optional[str] = None
        revisions = page.get("revisions") or []
        if revisions:
            main_slot = revisions[0].get("slots", {}).get("main", {})
            content = main_slot.get("content")

        return PageRecord(
            page_id=int(page["pageid"]),
            title=page.get("title", ""),
            content=content,
            url=page.get("fullurl"),
        )
