"""Chat completion service client."""

from __future__ import annotations

from .client import WandaChatClient

__all__ = ["WandaChatClient"]
