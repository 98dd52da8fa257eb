"""Document persistence: remote store drivers and the local-storage fallback."""

from .adapter import PersistenceAdapter
from .local_storage import LocalStorage, slides_storage_key

__all__ = ["LocalStorage", "PersistenceAdapter", "slides_storage_key"]
