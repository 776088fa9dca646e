"""
Service Container - Lightweight dependency injection for ytdl-bridge.
Provides centralized service registration and lazy instantiation.
"""
from typing import Dict, Any, Callable, TypeVar
from loguru import logger

T = TypeVar('T')


class ServiceContainer:
    """
    Lightweight dependency injection container.

    Services are created on first access and kept as singletons. Tests
    replace them with ``override()``.

    Usage:
        container.register(Services.YTDL, YtdlService)
        ytdl = container.get(Services.YTDL)  # resolves the executable on first call
    """

    def __init__(self):
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._instances: Dict[str, Any] = {}

    def register(self, name: str, factory: Callable[[], T]) -> None:
        self._factories[name] = factory
        logger.debug(f"[Container] Registered service: {name}")

    def get(self, name: str) -> Any:
        """
        Get or create a service instance.

        Raises:
            KeyError: If service not registered
        """
        if name not in self._instances:
            if name not in self._factories:
                raise KeyError(f"Service '{name}' not registered. "
                             f"Available: {list(self._factories.keys())}")
            self._instances[name] = self._factories[name]()
            logger.debug(f"[Container] Instantiated service: {name}")
        return self._instances[name]

    def has(self, name: str) -> bool:
        return name in self._factories

    def reset(self) -> None:
        """Drop all instances; factories stay registered."""
        self._instances.clear()
        logger.debug("[Container] All service instances cleared")

    def override(self, name: str, instance: Any) -> None:
        """Replace a service with a custom instance (for testing/mocking)."""
        self._instances[name] = instance
        logger.debug(f"[Container] Overrode service: {name}")


# Global container instance
container = ServiceContainer()


class Services:
    YTDL = "ytdl"


from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ytdl_bridge.services.ytdl import YtdlService


def get_ytdl() -> "YtdlService":
    return container.get(Services.YTDL)
