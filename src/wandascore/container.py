"""
Dependency injection container wiring the scoring service together.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, Generic, Optional, TypeVar

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from wandascore.chat.client import WandaChatClient
from wandascore.config import Config
from wandascore.content.source import MediaWikiContentSource
from wandascore.jobs.queue import ScoreJobQueue
from wandascore.models import ChatOptions
from wandascore.observability.logging import configure_logging
from wandascore.scoring.aggregator import ScoreAggregator
from wandascore.service import ScoreService
from wandascore.storage.sqlite_cache import SQLiteScoreCache

T = TypeVar("T")


class LazyInstance(Generic[T]):
    """Lazy-loaded instance with lifecycle management."""

    def __init__(self, factory: Callable[..., T], *args: Any, **kwargs: Any) -> None:
        self._factory = factory
        self._args = args
        self._kwargs = kwargs
        self._instance: Optional[T] = None
        self._initialized = False

    async def get(self) -> T:
        """Get or create the instance."""
        if not self._initialized:
            self._instance = self._factory(*self._args, **self._kwargs)
            if callable(getattr(self._instance, "initialize", None)):
                await self._instance.initialize()  # type: ignore[attr-defined]
            self._initialized = True
        assert self._instance is not None
        return self._instance

    async def cleanup(self) -> None:
        """Clean up the instance."""
        if self._instance is not None and callable(getattr(self._instance, "close", None)):
            await self._instance.close()  # type: ignore[attr-defined]
        self._instance = None
        self._initialized = False


class ConfigWatcher(FileSystemEventHandler):
    """Watches the configuration file for changes."""

    def __init__(self, container: DependencyContainer, loop: asyncio.AbstractEventLoop) -> None:
        self.container = container
        self.loop = loop
        self.logger = structlog.get_logger(self.__class__.__name__)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory or self.container.config_path is None:
            return
        if Path(str(event.src_path)).resolve() == self.container.config_path.resolve():
            self.logger.info("Configuration file changed, reloading", path=event.src_path)
            # watchdog calls back from its own thread
            asyncio.run_coroutine_threadsafe(self.container.reload_config(), self.loop)


class DependencyContainer:
    """
    Builds the chat client, content source, cache, scoring service and job
    queue on first use, and tears them down in reverse on shutdown.
    """

    def __init__(self, config_path: Optional[Path] = None, config: Optional[Config] = None) -> None:
        self.config_path = config_path
        self.config: Optional[Config] = config
        self.logger = structlog.get_logger(self.__class__.__name__)

        self._instances: Dict[str, LazyInstance[Any]] = {}
        self._instances_lock = asyncio.Lock()
        self._observer: Optional[Any] = None
        self.is_running = False

    async def initialize(self, watch_config: bool = True) -> None:
        """Load configuration and prepare lazy instances."""
        if self.config is None:
            await self.load_config()
        else:
            await self._create_instances()

        configure_logging(self.config.monitoring)  # type: ignore[union-attr]
        if watch_config:
            self._setup_config_watching()

        self.is_running = True
        self.logger.info(
            "Dependency container initialized",
            config_path=str(self.config_path) if self.config_path else "default",
        )

    async def load_config(self) -> None:
        """Load or reload configuration."""
        if self.config_path and self.config_path.exists():
            self.config = Config.from_yaml(self.config_path)
        else:
            self.config = Config()
        await self._create_instances()

    async def reload_config(self) -> None:
        """Reload configuration; instances are rebuilt on next access."""
        old_config = self.config
        async with self._instances_lock:
            await self.load_config()
        self.logger.info("Configuration reloaded", changes_detected=old_config != self.config)

    async def _create_instances(self) -> None:
        if self.config is None:
            raise RuntimeError("Configuration must be loaded before creating instances")

        await self._cleanup_instances()
        config = self.config
        self._instances = {
            "chat_client": LazyInstance(WandaChatClient, config.chat, user_agent=config.wiki.user_agent),
            "content_source": LazyInstance(MediaWikiContentSource, config.wiki),
            "cache": LazyInstance(SQLiteScoreCache, config.storage),
        }

    async def _get(self, name: str) -> Any:
        return await self._instances[name].get()

    async def get_cache(self) -> SQLiteScoreCache:
        async with self._instances_lock:
            return await self._get("cache")  # type: ignore[no-any-return]

    async def get_service(self) -> ScoreService:
        """Get the scoring service, building its collaborators on first use."""
        async with self._instances_lock:
            if "service" not in self._instances:
                assert self.config is not None
                chat_client = await self._get("chat_client")
                content_source = await self._get("content_source")
                cache = await self._get("cache")
                chat_options = ChatOptions(
                    use_public_knowledge=self.config.chat.use_public_knowledge,
                    temperature=self.config.chat.temperature,
                    max_tokens=self.config.chat.max_tokens,
                    skip_es_query=self.config.chat.skip_es_query,
                )
                aggregator = ScoreAggregator(
                    chat_client,
                    self.config.scoring,
                    chat_options=chat_options,
                    call_timeout=self.config.chat.timeout,
                )
                self._instances["service"] = LazyInstance(ScoreService, content_source, aggregator, cache)
            return await self._get("service")  # type: ignore[no-any-return]

    async def get_job_queue(self) -> ScoreJobQueue:
        """Get the background job queue, starting its workers on first use."""
        service = await self.get_service()
        async with self._instances_lock:
            if "jobs" not in self._instances:
                assert self.config is not None
                self._instances["jobs"] = LazyInstance(ScoreJobQueue, service, self.config.jobs)
            queue: ScoreJobQueue = await self._get("jobs")
        await queue.start()
        return queue

    @asynccontextmanager
    async def lifecycle(self, watch_config: bool = True) -> AsyncIterator[DependencyContainer]:
        """Context manager for proper lifecycle management."""
        try:
            await self.initialize(watch_config=watch_config)
            yield self
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Graceful shutdown of all managed instances."""
        if not self.is_running:
            return

        self.logger.info("Shutting down dependency container")
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

        await self._cleanup_instances()
        self.is_running = False
        self.logger.info("Dependency container shutdown complete")

    def _setup_config_watching(self) -> None:
        if not self.config_path or self._observer is not None:
            return
        self._observer = Observer()
        handler = ConfigWatcher(self, asyncio.get_running_loop())
        self._observer.schedule(handler, str(self.config_path.parent), recursive=False)
        self._observer.start()

    async def _cleanup_instances(self) -> None:
        # Jobs first so queued work drains before its collaborators close.
        for name in reversed(list(self._instances)):
            try:
                await self._instances[name].cleanup()
            except Exception as e:
                self.logger.error(f"Error cleaning up {name}", error=str(e))
        self._instances = {}

    def get_health_status(self) -> Dict[str, Any]:
        """Get health status of all managed components."""
        return {
            "is_running": self.is_running,
            "config_loaded": self.config is not None,
            "instances_count": len(self._instances),
            "config_path": str(self.config_path) if self.config_path else None,
        }
