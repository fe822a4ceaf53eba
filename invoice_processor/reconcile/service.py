"""Field reconciliation: analysis field bag -> normalized invoice.

Pure and stateless; all business defaults come from the PartyDirectory.
"""

from invoice_processor.reconcile.fields import (
    BILL_DATE_FIELDS,
    DUE_DATE_FIELDS,
    GROSS_AMOUNT_FIELDS,
    GST_AMOUNT_FIELDS,
    INVOICE_NUMBER_FIELDS,
    NET_AMOUNT_FIELDS,
    RawFieldBag,
    first_number,
    first_text,
    get_number,
    get_text,
)
from invoice_processor.reconcile.items import count_cases, extract_items
from invoice_processor.reconcile.parties import (
    PartyDirectory,
    resolve_customer,
    resolve_supplier,
)
from invoice_processor.reconcile.schema import NormalizedInvoice


def reconcile_invoice(fields: RawFieldBag, directory: PartyDirectory) -> NormalizedInvoice:
    """Map a field bag onto the normalized invoice schema.

    Args:
        fields: Field bag of the first analyzed document
        directory: Supplier/customer lookup table

    Returns:
        NormalizedInvoice; attributes with no usable candidate are None
    """
    cases = count_cases(fields)

    return NormalizedInvoice(
        supplier_name=resolve_supplier(fields, directory),
        customer_name=resolve_customer(fields, directory),
        invoice_number=first_text(fields, INVOICE_NUMBER_FIELDS),
        bill_date=first_text(fields, BILL_DATE_FIELDS),
        due_date=first_text(fields, DUE_DATE_FIELDS),
        gross_amount=first_number(fields, GROSS_AMOUNT_FIELDS),
        gst_amount=first_number(fields, GST_AMOUNT_FIELDS),
        net_amount=first_number(fields, NET_AMOUNT_FIELDS),
        # Cases and pieces are counted the same way on these invoices
        total_cases=cases,
        total_pieces=cases,
        items=extract_items(fields),
        vendor_name=get_text(fields, "VendorName"),
        invoice_id=get_text(fields, "InvoiceId"),
        invoice_date=get_text(fields, "InvoiceDate"),
        total_amount=get_number(fields, "InvoiceTotal"),
        sub_total=get_number(fields, "SubTotal"),
        tax_amount=get_number(fields, "TotalTax"),
    )
