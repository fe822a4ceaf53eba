"""Supplier and customer resolution.

The analysis model regularly swaps the issuing and receiving parties, so
every candidate is checked against keyword tables for both sides before
it is accepted.
"""

import logging

from pydantic import BaseModel, Field

from invoice_processor.reconcile.fields import (
    CUSTOMER_FIELDS,
    SUPPLIER_FIELDS,
    RawFieldBag,
    get_text,
    line_entries,
)
from invoice_processor.shared.config import Settings

logger = logging.getLogger(__name__)


class PartyDirectory(BaseModel):
    """Known supplier and customer for a tenant.

    Attributes:
        supplier_name: Canonical supplier name, also the fallback
        supplier_keywords: Lower-case fragments identifying the supplier
        customer_name: Canonical customer name, also the fallback
        customer_keywords: Lower-case fragments identifying the customer
    """

    supplier_name: str
    supplier_keywords: list[str] = Field(default_factory=list)
    customer_name: str
    customer_keywords: list[str] = Field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PartyDirectory":
        return cls(
            supplier_name=settings.supplier_name,
            supplier_keywords=settings.supplier_keywords,
            customer_name=settings.customer_name,
            customer_keywords=settings.customer_keywords,
        )

    def is_supplier(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword.lower() in lowered for keyword in self.supplier_keywords)

    def is_customer(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword.lower() in lowered for keyword in self.customer_keywords)


def resolve_supplier(fields: RawFieldBag, directory: PartyDirectory) -> str:
    """Resolve the issuing party of the invoice.

    Order: vendor fields, supplier keywords in item descriptions or the
    vendor address, then the directory default.
    """
    for name in SUPPLIER_FIELDS:
        candidate = get_text(fields, name)
        if candidate is None:
            continue
        if directory.is_customer(candidate):
            logger.info(f"Rejected {name}={candidate!r} as supplier: matches customer")
            continue
        if directory.is_supplier(candidate):
            return directory.supplier_name
        return candidate

    derived = _supplier_from_description(fields, directory)
    if derived is not None:
        return derived

    return directory.supplier_name


def _supplier_from_description(fields: RawFieldBag, directory: PartyDirectory) -> str | None:
    for entry in line_entries(fields):
        description = get_text(entry, "Description")
        if description and directory.is_supplier(description):
            return directory.supplier_name

    vendor_address = get_text(fields, "VendorAddress")
    if vendor_address and directory.is_supplier(vendor_address):
        return directory.supplier_name

    return None


def resolve_customer(fields: RawFieldBag, directory: PartyDirectory) -> str:
    """Resolve the receiving party of the invoice.

    Only the first present customer field is considered; one naming the
    supplier is discarded.
    """
    for name in CUSTOMER_FIELDS:
        candidate = get_text(fields, name)
        if candidate is None:
            continue
        if directory.is_customer(candidate):
            return directory.customer_name
        if directory.is_supplier(candidate):
            logger.info(f"Rejected {name}={candidate!r} as customer: matches supplier")
            break
        return candidate

    # A VendorName naming the customer resolves to the same canonical name
    return directory.customer_name
