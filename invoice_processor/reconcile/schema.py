"""Normalized invoice models produced by the reconciler.

Field names serialize in camelCase to match the documents stored per tenant.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LineItem(BaseModel):
    """Single reconciled invoice line."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: str = Field("", description="Raw line description")
    quantity: float = Field(1, description="Billed quantity (1 when not extracted)")
    unit_price: float = Field(0, description="Price per unit (0 when not extracted)")
    total_price: float = Field(0, description="Line amount (0 when not extracted)")

    item_name: str = Field("", description="Description without pack-size annotations")
    item_code: str | None = Field(None, description="Product code found in the description")
    pieces_count: int = Field(1, description="Pieces in the line", ge=1)
    unit: str = Field("PCS", description="Unit of measure keyword")
    mrp: float | None = Field(None, description="Maximum retail price, explicit or estimated")
    rate: float = Field(0, description="Purchase rate, same as unit price")
    discount_amount: float | None = Field(None, description="Discount on the line")


class NormalizedInvoice(BaseModel):
    """Invoice record reconciled from an analysis field bag."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Parties
    supplier_name: str
    customer_name: str

    # Invoice details
    invoice_number: str | None = None
    bill_date: str | None = None
    due_date: str | None = None

    # Monetary breakdown
    gross_amount: float | None = None
    gst_amount: float | None = None
    net_amount: float | None = None

    # Quantities summed over items
    total_cases: int | None = None
    total_pieces: int | None = None

    items: list[LineItem] = Field(default_factory=list)

    # Raw passthrough fields kept for older consumers of extractedData
    vendor_name: str | None = None
    invoice_id: str | None = None
    invoice_date: str | None = None
    total_amount: float | None = None
    sub_total: float | None = None
    tax_amount: float | None = None

    def to_document(self) -> dict:
        """Serialize to the camelCase mapping persisted as ``extractedData``."""
        return self.model_dump(by_alias=True)
