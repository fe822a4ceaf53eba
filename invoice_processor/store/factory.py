"""Factory for creating document stores based on configuration.

Implements Factory Pattern for backend selection with a registry for extensibility.
"""

import logging

from invoice_processor.shared.config import Settings
from invoice_processor.store.base import DocumentStore
from invoice_processor.store.firestore_store import FirestoreDocumentStore
from invoice_processor.store.memory_store import MemoryDocumentStore

logger = logging.getLogger(__name__)


class StoreRegistry:
    """Registry of available document store backends."""

    _backends: dict[str, type[DocumentStore]] = {
        "firestore": FirestoreDocumentStore,
        "memory": MemoryDocumentStore,
    }

    @classmethod
    def register(cls, name: str, store_class: type[DocumentStore]) -> None:
        """Register a new backend.

        Args:
            name: Backend identifier (must match Settings.store_backend)
            store_class: Class implementing DocumentStore
        """
        cls._backends[name] = store_class
        logger.info(f"Registered document store backend: {name}")

    @classmethod
    def get_store_class(cls, name: str) -> type[DocumentStore]:
        """Get store class by name.

        Raises:
            ValueError: If backend not found in registry
        """
        if name not in cls._backends:
            available = ", ".join(cls._backends.keys())
            raise ValueError(
                f"Unknown document store backend: '{name}'. Available backends: {available}"
            )
        return cls._backends[name]

    @classmethod
    def list_backends(cls) -> list[str]:
        return list(cls._backends.keys())


def create_document_store(settings: Settings) -> DocumentStore:
    """Create the document store selected by settings.store_backend.

    Logs a warning when the store is not configured; status and result
    persistence is then skipped by the processor.

    Args:
        settings: Application settings with store_backend field

    Returns:
        Configured document store instance
    """
    backend = settings.store_backend
    store = StoreRegistry.get_store_class(backend)(settings)

    if not store.is_available():
        logger.warning(
            f"Document store '{backend}' is not configured. "
            f"Invoice status and inventory will not be persisted."
        )

    logger.info(f"Created document store: {backend}")
    return store
