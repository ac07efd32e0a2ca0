"""
Calculation Module for Invoice Composer.

Pure functions deriving line totals, subtotal, discount, tax and grand
total, plus currency display formatting.
"""

from .engine import InvoiceTotals, calculate_totals, calculate_subtotal, line_total, update_item_field
from .formatting import format_currency, round_to_minor_unit

__all__ = [
    'InvoiceTotals',
    'calculate_totals',
    'calculate_subtotal',
    'line_total',
    'update_item_field',
    'format_currency',
    'round_to_minor_unit',
]
