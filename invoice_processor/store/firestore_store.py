"""Firestore document store.

Uses the async Firestore client with service account credentials supplied as
a JSON blob. Conditional writes use the document's last update time as the
version token.

Based on google-cloud-firestore:
https://cloud.google.com/python/docs/reference/firestore/latest
"""

import json
import logging
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.oauth2 import service_account

from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import DocumentNotFound, PersistenceFailure, WriteConflict
from invoice_processor.store.base import DocumentStore, StoredDocument

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by Google Cloud Firestore."""

    def __init__(self, settings: Settings) -> None:
        """Initialize Firestore store.

        Args:
            settings: Application settings with Firestore configuration
        """
        super().__init__(settings)
        self._client: firestore.AsyncClient | None = None

    @property
    def backend_name(self) -> str:
        return "firestore"

    def is_available(self) -> bool:
        """Check if Firestore project and credentials are configured.

        Returns:
            True if both project id and credentials JSON are set
        """
        return bool(
            self.settings.firestore_project_id and self.settings.firestore_credentials_json
        )

    def _get_client(self) -> firestore.AsyncClient:
        """Get or create the Firestore client (lazy initialization).

        Returns:
            Configured async Firestore client

        Raises:
            ValueError: If Firestore is not configured
        """
        if self._client is None:
            if not self.settings.firestore_project_id:
                raise ValueError(
                    "Firestore project not configured. "
                    "Set APP_FIRESTORE_PROJECT_ID environment variable."
                )
            if not self.settings.firestore_credentials_json:
                raise ValueError(
                    "Firestore credentials not configured. "
                    "Set APP_FIRESTORE_CREDENTIALS_JSON environment variable."
                )

            info = json.loads(self.settings.firestore_credentials_json)
            credentials = service_account.Credentials.from_service_account_info(info)
            self._client = firestore.AsyncClient(
                project=self.settings.firestore_project_id,
                credentials=credentials,
            )
            logger.info(
                f"Firestore client initialized for project: {self.settings.firestore_project_id}"
            )

        return self._client

    def _document(self, collection: str, doc_id: str) -> Any:
        try:
            return self._get_client().collection(collection).document(doc_id)
        except ValueError as e:
            raise PersistenceFailure(f"Invalid document {collection}/{doc_id}: {e}") from e

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        try:
            snapshot = await self._document(collection, doc_id).get()
        except gcp_exceptions.GoogleAPIError as e:
            raise PersistenceFailure(f"Firestore read failed for {collection}/{doc_id}: {e}") from e

        if not snapshot.exists:
            return None
        return StoredDocument(
            doc_id=doc_id,
            data=snapshot.to_dict() or {},
            version=snapshot.update_time,
        )

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        try:
            await self._document(collection, doc_id).update(fields)
        except gcp_exceptions.NotFound as e:
            raise DocumentNotFound(f"No document {collection}/{doc_id}") from e
        except gcp_exceptions.GoogleAPIError as e:
            raise PersistenceFailure(
                f"Firestore update failed for {collection}/{doc_id}: {e}"
            ) from e

    async def set(
        self, collection: str, doc_id: str, fields: dict[str, Any], merge: bool = True
    ) -> None:
        try:
            await self._document(collection, doc_id).set(fields, merge=merge)
        except gcp_exceptions.GoogleAPIError as e:
            raise PersistenceFailure(f"Firestore set failed for {collection}/{doc_id}: {e}") from e

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        try:
            await self._document(collection, doc_id).create(fields)
        except gcp_exceptions.AlreadyExists as e:
            raise WriteConflict(f"Document {collection}/{doc_id} already exists") from e
        except gcp_exceptions.GoogleAPIError as e:
            raise PersistenceFailure(
                f"Firestore create failed for {collection}/{doc_id}: {e}"
            ) from e

    async def update_if_unchanged(
        self, collection: str, doc_id: str, fields: dict[str, Any], version: Any
    ) -> None:
        document = self._document(collection, doc_id)
        option = self._get_client().write_option(last_update_time=version)
        try:
            await document.update(fields, option=option)
        except gcp_exceptions.NotFound as e:
            raise DocumentNotFound(f"No document {collection}/{doc_id}") from e
        except (gcp_exceptions.FailedPrecondition, gcp_exceptions.Aborted) as e:
            raise WriteConflict(f"Document {collection}/{doc_id} changed: {e}") from e
        except gcp_exceptions.GoogleAPIError as e:
            raise PersistenceFailure(
                f"Firestore update failed for {collection}/{doc_id}: {e}"
            ) from e
