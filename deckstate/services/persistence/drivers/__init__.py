"""Remote store driver implementations."""

from deckstate.shared.config import config

from .base import RemoteStore
from .memory import InMemoryRemoteStore
from .sqlalchemy_store import SQLAlchemyRemoteStore

REMOTE_STORE_DRIVERS: dict[str, type[RemoteStore]] = {
    "memory": InMemoryRemoteStore,
    "sqlalchemy": SQLAlchemyRemoteStore,
}


def create_remote_store(driver: str | None = None) -> RemoteStore:
    """Instantiate the configured remote store driver."""
    driver_name = driver or config.get("remote_store_driver", "memory")
    driver_cls = REMOTE_STORE_DRIVERS.get(driver_name)
    if driver_cls is None:
        raise ValueError(f"Remote store driver '{driver_name}' not found.")
    return driver_cls()


__all__ = [
    "REMOTE_STORE_DRIVERS",
    "InMemoryRemoteStore",
    "RemoteStore",
    "SQLAlchemyRemoteStore",
    "create_remote_store",
]
