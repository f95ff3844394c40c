"""
Service Container - Dependency Injection Container

Simple DI container for the progression store and service.
Uses lazy loading to only instantiate them when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from progression import config
from progression.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    The store is built from config unless one is injected.
    Services are lazy-loaded on first access via properties.
    """

    # Infrastructure dependencies (optional injection, config otherwise)
    store: Optional[object] = None  # ProgressStore instance
    backend: str = field(default_factory=lambda: config.STORE_BACKEND)

    # Services (lazy-loaded via properties)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)

    def build_store(self):
        """Create the configured ProgressStore (not yet connected)"""
        if self.backend == "memory":
            from progression.store.memory import InMemoryProgressStore
            return InMemoryProgressStore()
        if self.backend == "redis":
            from progression.store.redis_store import RedisProgressStore
            return RedisProgressStore(config.REDIS_URL, key_prefix=config.REDIS_KEY_PREFIX)
        raise ConfigurationError(f"Unknown store backend {self.backend!r}", config_key="STORE_BACKEND")

    @property
    def progress_store(self):
        """Get the ProgressStore (lazy-loaded)"""
        if self.store is None:
            self.store = self.build_store()
            logger.debug(f"{type(self.store).__name__} instantiated")
        return self.store

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from progression.services.progression_service import ProgressionService
            self._progression_service = ProgressionService(self.progress_store)
            logger.debug("ProgressionService instantiated")
        return self._progression_service

    async def start(self) -> None:
        """Connect the store when the backend needs a connection"""
        store = self.progress_store
        connect = getattr(store, "connect", None)
        if connect is not None:
            await connect()

    async def shutdown(self) -> None:
        if self.store is not None:
            await self.store.close()
            logger.info("Progress store closed")


# Global container instance (initialized by the host application)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def init_container(store: Optional[object] = None, backend: Optional[str] = None) -> ServiceContainer:
    """
    Initialize the global service container.

    Should be called once at startup, after configure_logging().

    Args:
        store: Pre-built ProgressStore (overrides the configured backend)
        backend: 'memory' or 'redis' (defaults to STORE_BACKEND)

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(store=store, backend=backend or config.STORE_BACKEND)

    logger.info(f"Service container initialized (backend={_container.backend})")
    return _container
