"""Inventory aggregation across invoices.

Every line item is folded into the tenant's inventory with a
read-modify-write that only commits if the record is unchanged since it was
read. Losing writers retry with jittered backoff, so concurrent invoices for
the same item never drop an update.
"""

import logging
from datetime import UTC, datetime

from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from invoice_processor.api import metrics
from invoice_processor.inventory.schema import (
    InventoryRecord,
    apply_sighting,
    inventory_document_id,
    new_inventory_record,
)
from invoice_processor.reconcile.items import UNKNOWN_ITEM_NAME
from invoice_processor.reconcile.schema import LineItem
from invoice_processor.shared.errors import PersistenceFailure, WriteConflict
from invoice_processor.store.base import DocumentStore

logger = logging.getLogger(__name__)


def inventory_collection(tenant_id: str) -> str:
    return f"tenants/{tenant_id}/inventory"


class InventorySummary(BaseModel):
    """Outcome of aggregating one invoice's items.

    Attributes:
        created: Items that started a new inventory record
        updated: Items added to an existing record
        skipped: Items without a usable name, or already counted for this invoice
        failed: Items whose write failed
    """

    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0


class InventoryAggregator:
    """Folds invoice line items into per-tenant inventory records."""

    def __init__(self, store: DocumentStore, dedupe_invoices: bool = True) -> None:
        """Initialize aggregator.

        Args:
            store: Document store holding inventory records
            dedupe_invoices: Skip items whose record already lists the invoice id.
                When disabled, reprocessing an invoice adds its quantities again.
        """
        self.store = store
        self.dedupe_invoices = dedupe_invoices

    async def record_items(
        self, tenant_id: str, invoice_id: str, items: list[LineItem]
    ) -> InventorySummary:
        """Aggregate an invoice's line items into inventory.

        Items are independent: a failed write is logged and the remaining
        items are still processed.

        Args:
            tenant_id: Tenant owning the inventory
            invoice_id: Invoice the items came from
            items: Reconciled line items

        Returns:
            InventorySummary with per-outcome counts
        """
        summary = InventorySummary()
        logger.info(f"Processing {len(items)} inventory items for invoice {invoice_id}")

        named = []
        for item in items:
            if not item.item_name or item.item_name == UNKNOWN_ITEM_NAME:
                logger.warning(f"Skipping item with empty name: {item.description!r}")
                summary.skipped += 1
                metrics.inventory_writes_total.labels(action="skipped").inc()
                continue
            named.append(item)

        for item in merge_line_items(named):
            try:
                action = await self._record_item(tenant_id, invoice_id, item)
            except PersistenceFailure as e:
                logger.error(f"Failed to save inventory item {item.item_name!r}: {e}")
                summary.failed += 1
                metrics.inventory_writes_total.labels(action="failed").inc()
                continue

            setattr(summary, action, getattr(summary, action) + 1)
            metrics.inventory_writes_total.labels(action=action).inc()

        logger.info(
            f"Inventory for invoice {invoice_id}: {summary.created} created, "
            f"{summary.updated} updated, {summary.skipped} skipped, {summary.failed} failed"
        )
        return summary

    @retry(
        retry=retry_if_exception_type(WriteConflict),
        stop=stop_after_attempt(5),
        wait=wait_exponential_jitter(multiplier=0.05, max=1),
        reraise=True,
    )
    async def _record_item(self, tenant_id: str, invoice_id: str, item: LineItem) -> str:
        """Create or update the record for one item.

        Returns:
            "created", "updated" or "skipped"

        Raises:
            WriteConflict: After all attempts lost to concurrent writers
        """
        collection = inventory_collection(tenant_id)
        doc_id = inventory_document_id(item)
        now = datetime.now(UTC)

        existing = await self.store.get(collection, doc_id)
        if existing is None:
            record = new_inventory_record(tenant_id, invoice_id, item, now)
            await self.store.create(collection, doc_id, record.to_document())
            logger.info(
                f"Created new inventory item: {item.item_name} (quantity: {item.quantity})"
            )
            return "created"

        record = InventoryRecord.model_validate(existing.data)
        if self.dedupe_invoices and record.has_invoice(invoice_id):
            logger.info(
                f"Inventory item {item.item_name} already counted for invoice {invoice_id}"
            )
            return "skipped"

        updated = apply_sighting(record, invoice_id, item, now)
        await self.store.update_if_unchanged(
            collection, doc_id, updated.to_document(), existing.version
        )
        logger.info(
            f"Updated existing inventory item: {item.item_name} (added {item.quantity} units)"
        )
        return "updated"


def merge_line_items(items: list[LineItem]) -> list[LineItem]:
    """Combine lines of one invoice that share an inventory identity.

    Quantities and pieces are summed; prices come from the last line.
    """
    merged: dict[str, LineItem] = {}
    for item in items:
        doc_id = inventory_document_id(item)
        previous = merged.get(doc_id)
        if previous is None:
            merged[doc_id] = item
            continue
        merged[doc_id] = item.model_copy(
            update={
                "quantity": previous.quantity + item.quantity,
                "pieces_count": previous.pieces_count + item.pieces_count,
            }
        )
    return list(merged.values())
