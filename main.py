#!/usr/bin/env python3
"""
Production entry point for wandascore.

Runs the HTTP API, or prints a health report when called with ``health``.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import structlog
import uvicorn

from wandascore.config import Config
from wandascore.container import DependencyContainer
from wandascore.observability.metrics import start_metrics_server
from wandascore.web.main import create_app

logger = structlog.get_logger(__name__)


def load_config() -> tuple[Path | None, Config]:
    config_path = os.getenv("WANDASCORE_CONFIG")
    path = Path(config_path) if config_path else None
    return path, Config.from_yaml(path) if path else Config()


async def health_check() -> dict:
    """Perform health check for container orchestration."""
    try:
        path, config = load_config()
        container = DependencyContainer(path, config=config)
        async with container.lifecycle(watch_config=False):
            cache = await container.get_cache()
            cached_reports = await cache.count()
            return {"status": "healthy", "cached_reports": cached_reports, **container.get_health_status()}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


def main() -> None:
    if len(sys.argv) > 1 and sys.argv[1] == "health":
        health = asyncio.run(health_check())
        print(json.dumps(health, indent=2))
        sys.exit(0 if health["status"] == "healthy" else 1)

    path, config = load_config()
    start_metrics_server(config.monitoring)
    logger.info("wandascore API starting", host=config.web.host, port=config.web.port)
    uvicorn.run(create_app(DependencyContainer(path, config=config)), host=config.web.host, port=config.web.port)


if __name__ == "__main__":
    main()
