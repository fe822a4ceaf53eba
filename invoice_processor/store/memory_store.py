"""In-memory document store.

Used for local development (APP_STORE_BACKEND=memory) and tests. Versions
are per-document write counters.
"""

import copy
from typing import Any

from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import DocumentNotFound, WriteConflict
from invoice_processor.store.base import DocumentStore, StoredDocument


class MemoryDocumentStore(DocumentStore):
    """Dict-backed document store, keyed by (collection, doc_id)."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self._documents: dict[tuple[str, str], dict[str, Any]] = {}
        self._versions: dict[tuple[str, str], int] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True

    def _write(self, key: tuple[str, str], data: dict[str, Any]) -> None:
        self._documents[key] = data
        self._versions[key] = self._versions.get(key, 0) + 1

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        key = (collection, doc_id)
        if key not in self._documents:
            return None
        return StoredDocument(
            doc_id=doc_id,
            data=copy.deepcopy(self._documents[key]),
            version=self._versions[key],
        )

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        key = (collection, doc_id)
        if key not in self._documents:
            raise DocumentNotFound(f"No document {collection}/{doc_id}")
        self._write(key, {**self._documents[key], **copy.deepcopy(fields)})

    async def set(
        self, collection: str, doc_id: str, fields: dict[str, Any], merge: bool = True
    ) -> None:
        key = (collection, doc_id)
        existing = self._documents.get(key, {}) if merge else {}
        self._write(key, {**existing, **copy.deepcopy(fields)})

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        key = (collection, doc_id)
        if key in self._documents:
            raise WriteConflict(f"Document {collection}/{doc_id} already exists")
        self._write(key, copy.deepcopy(fields))

    async def update_if_unchanged(
        self, collection: str, doc_id: str, fields: dict[str, Any], version: Any
    ) -> None:
        key = (collection, doc_id)
        if key not in self._documents:
            raise DocumentNotFound(f"No document {collection}/{doc_id}")
        if self._versions[key] != version:
            raise WriteConflict(
                f"Document {collection}/{doc_id} changed "
                f"(expected version {version}, found {self._versions[key]})"
            )
        self._write(key, {**self._documents[key], **copy.deepcopy(fields)})

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """Return a copy of every document in a collection, keyed by id."""
        return {
            doc_id: copy.deepcopy(data)
            for (path, doc_id), data in self._documents.items()
            if path == collection
        }
