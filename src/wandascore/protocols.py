"""
Interfaces of the collaborators the scoring core depends on.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from wandascore.models import ChatOptions, PageRecord, ScoreReport


@runtime_checkable
class ChatClient(Protocol):
    """Natural-language request/response capability used for every factor."""

    async def complete(self, message: str, instructions: str, options: ChatOptions) -> str:
        """
        Ask the chat service a question.

        Raises:
            ChatServiceError: if the call fails or returns no usable text.
        """
        ...


@runtime_checkable
class ContentSource(Protocol):
    """Resolves a page title to its current content."""

    async def get_page(self, title: str) -> Optional[PageRecord]:
        """Return the page, or None when it does not exist."""
        ...


@runtime_checkable
class ScoreCache(Protocol):
    """Stores at most one report per page id."""

    async def get(self, page_id: int) -> Optional[ScoreReport]:
        ...

    async def put(self, page_id: int, report: ScoreReport) -> None:
        ...
