"""Line item extraction heuristics.

Descriptions on dairy/ice-cream distributor invoices carry pack sizes,
product codes and prices inline, e.g. ``"Vanilla 48 ML (48 Nos) MRP: 25"``.
"""

import re
from collections.abc import Mapping
from typing import Any

from invoice_processor.reconcile.fields import (
    RawFieldBag,
    get_number,
    get_text,
    line_entries,
    parse_count,
)
from invoice_processor.reconcile.schema import LineItem

UNKNOWN_ITEM_NAME = "Unknown Item"
DEFAULT_UNIT = "PCS"

# Checked in order; first keyword found in the upper-cased description wins
UNIT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("ML", ("ML",)),
    ("LTR", ("LTR", "LITER")),
    ("KG", ("KG", "KILOGRAM")),
    ("GM", ("GM", "GRAM")),
    ("PCS", ("PCS", "PIECE")),
    ("BOX", ("BOX", "CARTON")),
)

_PACK_ANNOTATIONS = (
    re.compile(r"\([0-9]+\s*(nos?|pcs?|pieces?|ml|gm|kg)\)", re.IGNORECASE),
    re.compile(r"\[[0-9]+\s*(nos?|pcs?|pieces?|ml|gm|kg)\]", re.IGNORECASE),
)
_WHITESPACE = re.compile(r"\s+")
_ALPHA_CODE = re.compile(r"\b[A-Z]{2,}[0-9]+\b")
_NUMERIC_CODE = re.compile(r"\b[0-9]{3,}\b")
_PIECES = re.compile(r"[\(\[](\d+)\s*(?:nos?|pcs?|pieces?)[\)\]]", re.IGNORECASE)
_CASES = re.compile(r"\((\d+)\s*nos?\)", re.IGNORECASE)
_MRP = re.compile(r"(?:mrp|M\.R\.P\.?)\s*:?\s*₹?(\d+(?:\.\d{2})?)", re.IGNORECASE)
_DISCOUNT = re.compile(r"(?:discount|disc\.?)\s*:?\s*₹?(\d+(?:\.\d{2})?)", re.IGNORECASE)

MRP_MARKUP = 1.2


def extract_item_name(description: str) -> str:
    """Strip pack-size annotations such as ``(48 Nos)`` or ``[12 PCS]``."""
    if not description:
        return UNKNOWN_ITEM_NAME

    name = description.strip()
    for pattern in _PACK_ANNOTATIONS:
        name = pattern.sub("", name)
    return _WHITESPACE.sub(" ", name).strip()


def extract_item_code(description: str) -> str | None:
    """Find a product code: letters then digits, else a 3+ digit number."""
    if not description:
        return None

    match = _ALPHA_CODE.search(description.upper())
    if match:
        return match.group(0)

    match = _NUMERIC_CODE.search(description)
    if match:
        return match.group(0)

    return None


def extract_pieces_count(description: str, quantity: float) -> int:
    fallback = max(1, int(quantity))
    if not description:
        return fallback

    match = _PIECES.search(description)
    if match:
        return max(1, int(match.group(1)))
    return fallback


def extract_unit(description: str) -> str:
    upper = description.upper()
    for unit, keywords in UNIT_KEYWORDS:
        if any(keyword in upper for keyword in keywords):
            return unit
    return DEFAULT_UNIT


def extract_mrp(description: str, unit_price: float) -> float | None:
    """Explicit MRP from the description, else a 20% markup estimate."""
    if not description:
        return None

    match = _MRP.search(description)
    if match:
        return float(match.group(1))

    if unit_price > 0:
        return round(unit_price * MRP_MARKUP, 2)
    return None


def calculate_discount(description: str, unit_price: float, total_price: float) -> float | None:
    """Explicit discount from the description, else the unit/total shortfall."""
    if unit_price <= 0 or total_price <= 0:
        return None

    match = _DISCOUNT.search(description)
    if match:
        return float(match.group(1))

    shortfall = round(unit_price - total_price, 2)
    return shortfall if shortfall > 0 else None


def build_line_item(entry: Mapping[str, Any]) -> LineItem:
    """Reconcile one ``Items`` entry of the field bag."""
    description = get_text(entry, "Description") or ""
    quantity = get_number(entry, "Quantity")
    if quantity is None:
        quantity = 1.0
    unit_price = get_number(entry, "UnitPrice") or 0.0
    total_price = get_number(entry, "Amount") or 0.0

    return LineItem(
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        item_name=extract_item_name(description),
        item_code=extract_item_code(description),
        pieces_count=extract_pieces_count(description, quantity),
        unit=extract_unit(description),
        mrp=extract_mrp(description, unit_price),
        rate=unit_price,
        discount_amount=calculate_discount(description, unit_price, total_price),
    )


def extract_items(fields: RawFieldBag) -> list[LineItem]:
    return [build_line_item(entry) for entry in line_entries(fields)]


def count_cases(fields: RawFieldBag) -> int | None:
    """Sum ``(N Nos)`` counts, or whole quantities, over all line items.

    Returns:
        Total count, or None when no item contributed a value
    """
    total = 0
    found = False
    for entry in line_entries(fields):
        description = get_text(entry, "Description") or ""
        match = _CASES.search(description)
        if match:
            total += int(match.group(1))
            found = True
            continue

        quantity = parse_count(entry.get("Quantity"))
        if quantity is not None:
            total += quantity
            found = True

    return total if found else None
