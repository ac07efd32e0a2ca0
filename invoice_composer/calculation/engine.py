"""
Calculation Engine Module.

Derives the financial summary of an invoice. The live preview, every
export path, the email hand-off and the CLI all call
:func:`calculate_totals`, so what is shown is what is exported.

Formula:
    subtotal  = sum(quantity * unit_price)
    discount  = subtotal * value / 100   (percentage)
              = value                    (fixed)
    taxable   = subtotal - discount
    tax       = taxable * tax_rate / 100
    total     = taxable + tax

Plain float arithmetic; rounding happens only in currency formatting.
Negative discounts or discounts larger than the subtotal are passed
through unchanged.

Author: Invoice Composer Team
"""

from dataclasses import dataclass, asdict, replace
from typing import Dict, Iterable

from invoice_composer.models.invoice import InvoiceData, InvoiceItem


@dataclass(frozen=True)
class InvoiceTotals:
    """
    Derived financial fields of an invoice.

    Attributes:
        subtotal: Sum of line totals.
        discount_amount: Discount in currency units.
        taxable_amount: Subtotal minus discount.
        tax: Tax on the taxable amount.
        total: Amount due.
    """
    subtotal: float
    discount_amount: float
    taxable_amount: float
    tax: float
    total: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def line_total(item: InvoiceItem) -> float:
    """Line total recomputed from quantity and unit price."""
    return float(item.quantity) * float(item.unit_price)


def calculate_subtotal(items: Iterable[InvoiceItem]) -> float:
    """Sum of recomputed line totals."""
    return sum((line_total(item) for item in items), 0.0)


def calculate_totals(data: InvoiceData) -> InvoiceTotals:
    """
    Compute subtotal, discount, taxable amount, tax and total.

    Args:
        data: Invoice to summarize.

    Returns:
        InvoiceTotals for the invoice.

    Example:
        >>> totals = calculate_totals(invoice)  # 2 x 50, 10% off, 10% tax
        >>> totals.total
        99.0
    """
    subtotal = calculate_subtotal(data.items)
    discount_amount = data.discount.amount(subtotal)
    taxable_amount = subtotal - discount_amount
    tax = taxable_amount * float(data.tax_rate) / 100
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax=tax,
        total=taxable_amount + tax,
    )


def update_item_field(item: InvoiceItem, field_name: str, value) -> InvoiceItem:
    """
    Return a copy of an item with one field changed.

    Quantity and unit price are coerced to float; the line total follows
    automatically because it is derived.

    Raises:
        ValueError: If the field is ``total`` or unknown, or a number is invalid.
    """
    if field_name in ('total', 'id'):
        raise ValueError(f"Item field '{field_name}' cannot be edited")
    if field_name in ('quantity', 'unit_price'):
        value = float(value)
    elif field_name not in ('description', 'code'):
        raise ValueError(f"Unknown item field '{field_name}'")
    return replace(item, **{field_name: value})
