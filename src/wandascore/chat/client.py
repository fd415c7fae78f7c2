"""
HTTP client for the wiki's chat completion action (``action=wandachat``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from wandascore.config.config import ChatConfig
from wandascore.exceptions import ChatServiceError
from wandascore.models import ChatOptions

logger = structlog.get_logger(__name__)


def _flag(value: bool) -> Optional[str]:
    # MediaWiki boolean parameters are true when present, whatever their value.
    return "1" if value else None


class WandaChatClient:
    """Asks the chat service one question per call and returns the answer text."""

    def __init__(
        self,
        config: ChatConfig,
        user_agent: str = "WandaScore/0.1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.api_url:
            raise ValueError("ChatConfig.api_url must be set")
        self.config = config
        self.user_agent = user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout, connect=10.0),
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
            follow_redirects=True,
        )
        logger.info("Chat client initialized", api_url=self.config.api_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> WandaChatClient:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def build_params(self, message: str, instructions: str, options: ChatOptions) -> Dict[str, str]:
        params = {
            "action": "wandachat",
            "format": "json",
            "message": message,
            "customprompt": instructions,
            "usepublicknowledge": _flag(options.use_public_knowledge),
            "skipesquery": _flag(options.skip_es_query),
            "temperature": f"{options.temperature:g}",
            "maxtokens": str(options.max_tokens),
        }
        return {key: value for key, value in params.items() if value is not None}

    async def complete(self, message: str, instructions: str, options: ChatOptions) -> str:
        """
        Send one question to the chat service.

        Raises:
            ChatServiceError: on transport errors (after retries), any other httpx
                failure, API errors or an empty answer.
        """
        if self._client is None:
            await self.initialize()
        assert self._client is not None

        data = self.build_params(message, instructions, options)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post(self.config.api_url, data=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ChatServiceError(
                f"Chat service returned HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.TransportError as e:
            raise ChatServiceError(f"Chat service unreachable: {e}") from e
        except httpx.HTTPError as e:
            raise ChatServiceError(f"Chat request failed: {e}") from e

        return self._extract_response(response)

    @staticmethod
    def _extract_response(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError as e:
            raise ChatServiceError("Chat service returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise ChatServiceError("Chat service returned an unexpected payload")
        if "error" in payload:
            error = payload["error"]
            info = error.get("info") if isinstance(error, dict) else str(error)
            raise ChatServiceError(f"Chat service error: {info}")

        text = payload.get("response")
        if not isinstance(text, str) or not text.strip():
            raise ChatServiceError("Chat service returned no response text")
        return text
