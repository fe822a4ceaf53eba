"""Invoice status transitions in the document store.

Writes are best-effort: a failed write is logged and reported as False, and
never interrupts the request being processed.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from invoice_processor.reconcile.schema import NormalizedInvoice
from invoice_processor.shared.errors import PersistenceFailure
from invoice_processor.store.base import DocumentStore

logger = logging.getLogger(__name__)

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def invoice_collection(tenant_id: str) -> str:
    return f"tenants/{tenant_id}/invoices"


class InvoiceStatusRecorder:
    """Records processing status on the tenant's invoice document."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def mark_processing(self, tenant_id: str, invoice_id: str) -> bool:
        """Set status ``processing``; the invoice document must already exist."""
        return await self._write(
            tenant_id,
            invoice_id,
            STATUS_PROCESSING,
            {"status": STATUS_PROCESSING, "processingStartedAt": datetime.now(UTC)},
            upsert=False,
        )

    async def mark_completed(
        self, tenant_id: str, invoice_id: str, invoice: NormalizedInvoice
    ) -> bool:
        """Set status ``completed`` and store the reconciled invoice."""
        return await self._write(
            tenant_id,
            invoice_id,
            STATUS_COMPLETED,
            {
                "status": STATUS_COMPLETED,
                "extractedData": invoice.to_document(),
                "processedAt": datetime.now(UTC),
            },
            upsert=False,
        )

    async def mark_failed(self, tenant_id: str, invoice_id: str, error_message: str) -> bool:
        """Set status ``failed``, creating the invoice document if needed."""
        fields: dict[str, Any] = {"status": STATUS_FAILED, "processedAt": datetime.now(UTC)}
        if error_message:
            fields["errorMessage"] = error_message
        return await self._write(tenant_id, invoice_id, STATUS_FAILED, fields, upsert=True)

    async def _write(
        self,
        tenant_id: str,
        invoice_id: str,
        status: str,
        fields: dict[str, Any],
        upsert: bool,
    ) -> bool:
        if not self.store.is_available():
            logger.debug(f"Document store unavailable, not recording status {status}")
            return False

        collection = invoice_collection(tenant_id)
        try:
            if upsert:
                await self.store.set(collection, invoice_id, fields, merge=True)
            else:
                await self.store.update(collection, invoice_id, fields)
        except PersistenceFailure as e:
            logger.error(f"Failed to update invoice {invoice_id} status to {status}: {e}")
            return False

        logger.info(f"Updated invoice {invoice_id} status to {status}")
        return True
