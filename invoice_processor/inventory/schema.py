"""Inventory records aggregated from invoice line items.

One record exists per tenant and item identity (item code when the line has
one, else the item name). Records are stored with a deterministic id derived
from that identity.
"""

import hashlib
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from invoice_processor.reconcile.schema import LineItem


class InvoiceHistoryEntry(BaseModel):
    """One invoice's contribution to an inventory record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    invoice_id: str
    quantity: float
    unit_price: float = 0
    added_at: datetime


class InventoryRecord(BaseModel):
    """Cumulative stock for one item of one tenant."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    tenant_id: str
    item_name: str
    item_code: str | None = None
    description: str = ""
    unit: str = "PCS"

    quantity: float = 0
    pieces_count: int = 0

    rate: float | None = None
    mrp: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    discount_amount: float | None = None

    invoice_id: str | None = Field(None, description="Invoice that created the record")
    last_invoice_id: str | None = None
    invoice_history: list[InvoiceHistoryEntry] = Field(default_factory=list)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    def has_invoice(self, invoice_id: str) -> bool:
        return any(entry.invoice_id == invoice_id for entry in self.invoice_history)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def inventory_key(item: LineItem) -> str:
    """Identity of an item within a tenant's inventory."""
    if item.item_code:
        return f"code:{item.item_code}"
    return f"name:{item.item_name}"


def inventory_document_id(item: LineItem) -> str:
    return hashlib.sha1(inventory_key(item).encode("utf-8")).hexdigest()


def _history_entry(invoice_id: str, item: LineItem, now: datetime) -> InvoiceHistoryEntry:
    return InvoiceHistoryEntry(
        invoice_id=invoice_id,
        quantity=item.quantity,
        unit_price=item.unit_price,
        added_at=now,
    )


def new_inventory_record(
    tenant_id: str, invoice_id: str, item: LineItem, now: datetime
) -> InventoryRecord:
    """Seed a record from the first sighting of an item."""
    return InventoryRecord(
        id=inventory_document_id(item),
        tenant_id=tenant_id,
        item_name=item.item_name,
        item_code=item.item_code,
        description=item.description,
        unit=item.unit,
        quantity=item.quantity,
        pieces_count=item.pieces_count,
        rate=item.unit_price,
        mrp=item.mrp if item.mrp is not None else item.unit_price,
        unit_price=item.unit_price,
        total_price=item.total_price,
        discount_amount=item.discount_amount,
        invoice_id=invoice_id,
        last_invoice_id=invoice_id,
        invoice_history=[_history_entry(invoice_id, item, now)],
        created_at=now,
        updated_at=now,
    )


def apply_sighting(
    record: InventoryRecord, invoice_id: str, item: LineItem, now: datetime
) -> InventoryRecord:
    """Add an item's quantities to a record and take its latest prices.

    Returns:
        Updated copy of the record
    """
    return record.model_copy(
        update={
            "quantity": record.quantity + item.quantity,
            "pieces_count": record.pieces_count + item.pieces_count,
            "description": item.description,
            "unit": item.unit,
            "rate": item.unit_price,
            "mrp": item.mrp if item.mrp is not None else item.unit_price,
            "unit_price": item.unit_price,
            "total_price": item.total_price,
            "discount_amount": item.discount_amount,
            "last_invoice_id": invoice_id,
            "invoice_history": [*record.invoice_history, _history_entry(invoice_id, item, now)],
            "updated_at": now,
        }
    )
