"""Abstract base class for document stores.

Enables switching between Firestore and the in-memory store used for local
development and tests while keeping one async interface.

Documents are addressed by a collection path (e.g. ``tenants/t1/invoices``)
and a document id.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from invoice_processor.shared.config import Settings


class StoredDocument(BaseModel):
    """Snapshot of a stored document.

    Attributes:
        doc_id: Document id within its collection
        data: Document fields
        version: Opaque version token for conditional writes
    """

    doc_id: str
    data: dict[str, Any]
    version: Any = None


class DocumentStore(ABC):
    """Async document store interface.

    Write methods raise PersistenceFailure (or a subclass) on any error.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize store with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Get backend name for logging/metrics."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the store is configured for use."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        """Read a document, None if it does not exist."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing document.

        Raises:
            DocumentNotFound: If the document does not exist
        """

    @abstractmethod
    async def set(
        self, collection: str, doc_id: str, fields: dict[str, Any], merge: bool = True
    ) -> None:
        """Write a document, merging into any existing one when merge is set (upsert)."""

    @abstractmethod
    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Create a document.

        Raises:
            WriteConflict: If the document already exists
        """

    @abstractmethod
    async def update_if_unchanged(
        self, collection: str, doc_id: str, fields: dict[str, Any], version: Any
    ) -> None:
        """Merge fields into a document only if it is still at ``version``.

        Raises:
            WriteConflict: If the document changed since it was read
        """
