"""Field lookup helpers for analysis field bags.

Each target attribute has an ordered tuple of candidate field names.
The first candidate that yields a usable value wins.
"""

import math
import re
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

# Field name -> typed value (str, int, float, date, list, dict) as produced by analysis
RawFieldBag = Mapping[str, Any]

INVOICE_NUMBER_FIELDS = ("InvoiceId", "DocumentId", "InvoiceNumber", "BillNumber", "Number")
BILL_DATE_FIELDS = ("InvoiceDate", "DocumentDate", "BillDate", "Date", "IssuedDate")
DUE_DATE_FIELDS = ("DueDate", "PaymentDate")

GROSS_AMOUNT_FIELDS = ("SubTotal", "AmountDue", "TaxableAmount", "GrossAmount")
GST_AMOUNT_FIELDS = ("TotalTax", "Tax", "GST", "TaxAmount", "CGST", "SGST", "IGST")
NET_AMOUNT_FIELDS = ("InvoiceTotal", "Total", "TotalAmount", "NetAmount", "AmountPayable")

SUPPLIER_FIELDS = ("VendorName", "VendorAddressRecipient")
CUSTOMER_FIELDS = ("CustomerName", "BillingAddressRecipient", "ShippingAddressRecipient")

ITEMS_FIELD = "Items"

_NUMBER_NOISE = re.compile(r"[\s,₹$€£]")


def field_text(value: Any) -> str | None:
    """Render a field value as text.

    Floats render with two decimals and dates as ISO ``YYYY-MM-DD``.
    Blank strings, lists and maps have no text form.
    """
    if value is None or isinstance(value, (list, tuple, dict)):
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        return f"{value:.2f}"
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return str(value)


def parse_number(value: Any) -> float | None:
    """Parse a number without regard to the host locale.

    Commas are thousands separators and currency symbols are ignored.

    Returns:
        Parsed float, or None when the value is absent or unparsable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _NUMBER_NOISE.sub("", value)
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_count(value: Any) -> int | None:
    """Parse a whole-number count; fractional values are not counts."""
    number = parse_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def get_text(fields: RawFieldBag, name: str) -> str | None:
    return field_text(fields.get(name))


def get_number(fields: RawFieldBag, name: str) -> float | None:
    return parse_number(fields.get(name))


def first_text(fields: RawFieldBag, candidates: Iterable[str]) -> str | None:
    """Return the text of the first candidate field that has one."""
    for name in candidates:
        text = get_text(fields, name)
        if text is not None:
            return text
    return None


def first_number(fields: RawFieldBag, candidates: Iterable[str]) -> float | None:
    """Return the first candidate field that parses as a number."""
    for name in candidates:
        number = get_number(fields, name)
        if number is not None:
            return number
    return None


def line_entries(fields: RawFieldBag) -> list[Mapping[str, Any]]:
    """Return the map-typed entries of the ``Items`` list."""
    items = fields.get(ITEMS_FIELD)
    if not isinstance(items, (list, tuple)):
        return []
    return [entry for entry in items if isinstance(entry, Mapping)]
