"""
Invoice Data Classes.

This module defines the aggregate invoice record edited by a session:
line items, the tagged discount, the status variant and the invoice
itself. Records are serialized with camelCase keys so that drafts,
templates and session snapshots share one wire format.

Author: Invoice Composer Team
"""

from dataclasses import dataclass, field, fields, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from invoice_composer.utils.exceptions import ValidationError
from invoice_composer.utils.helpers import to_camel_case, to_snake_case


class InvoiceStatus(str, Enum):
    """Lifecycle status shown on the invoice."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class DiscountType(str, Enum):
    """How a discount value is interpreted."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Discount:
    """
    Tagged discount variant.

    Attributes:
        type: PERCENTAGE (value is a percent of the subtotal) or FIXED
              (value is an amount in the invoice currency).
        value: Discount value. Negative values are not defended against.
    """
    type: DiscountType = DiscountType.PERCENTAGE
    value: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, 'type', DiscountType(self.type))
        object.__setattr__(self, 'value', float(self.value))

    def amount(self, subtotal: float) -> float:
        """Discount amount for the given subtotal."""
        if self.type is DiscountType.PERCENTAGE:
            return subtotal * self.value / 100
        if self.type is DiscountType.FIXED:
            return self.value
        raise ValueError(f"Unhandled discount type: {self.type!r}")


@dataclass
class InvoiceItem:
    """
    A single invoice line.

    ``total`` is derived from quantity and unit price on every access,
    so there is no stored total that could go stale.

    Example:
        >>> item = InvoiceItem(id="1", description="Design", quantity=2, unit_price=50)
        >>> item.total
        100.0
    """
    id: str
    description: str = ""
    quantity: float = 1.0
    unit_price: float = 0.0
    code: Optional[str] = None

    @property
    def total(self) -> float:
        """Line total (quantity x unit price)."""
        return float(self.quantity) * float(self.unit_price)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a camelCase record including the derived total."""
        record = {
            'id': self.id,
            'description': self.description,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
            'total': self.total,
        }
        if self.code is not None:
            record['code'] = self.code
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> 'InvoiceItem':
        """
        Build an item from a camelCase record.

        Any stored ``total`` is ignored and recomputed.
        """
        return cls(
            id=str(record['id']),
            description=record.get('description', '') or '',
            quantity=float(record.get('quantity', 0) or 0),
            unit_price=float(record.get('unitPrice', 0) or 0),
            code=record.get('code'),
        )


# Fields serialized as flat discountType / discountValue keys
DISCOUNT_ALIASES = ('discount_type', 'discount_value')


@dataclass
class InvoiceData:
    """
    The full structured record describing one invoice.

    Instances are treated as values: editing goes through
    :meth:`with_field`, which returns a new instance.
    """
    # Invoice details
    invoice_number: str = ""
    invoice_date: str = ""
    due_date: str = ""
    payment_terms: str = ""

    # Company information
    company_name: str = ""
    company_address: str = ""
    company_city: str = ""
    company_state: str = ""
    company_zip: str = ""
    company_country: str = ""
    company_phone: str = ""
    company_email: str = ""
    company_website: str = ""
    company_tax_id: str = ""
    company_logo: str = ""
    brand_color: str = "#3b82f6"

    # Client information
    client_name: str = ""
    client_address: str = ""
    client_city: str = ""
    client_state: str = ""
    client_zip: str = ""
    client_country: str = ""
    client_email: str = ""
    client_phone: str = ""

    # Items
    items: List[InvoiceItem] = field(default_factory=list)

    # Financial
    currency: str = "USD"
    tax_rate: float = 0.0
    discount: Discount = field(default_factory=Discount)

    # Payment
    payment_methods: List[str] = field(default_factory=list)
    payment_instructions: str = ""
    bank_details: str = ""

    # Settings
    notes: str = ""
    terms: str = ""
    status: InvoiceStatus = InvoiceStatus.DRAFT

    def __post_init__(self) -> None:
        self.status = InvoiceStatus(self.status)
        self.payment_methods = list(dict.fromkeys(self.payment_methods))
        _check_unique_item_ids(self.items)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def default(cls, today: Optional[date] = None) -> 'InvoiceData':
        """
        The sample invoice a fresh session starts from.

        Args:
            today: Issue date; the due date is 30 days later.
        """
        today = today or date.today()
        return cls(
            invoice_number="INV-001",
            invoice_date=today.isoformat(),
            due_date=(today + relativedelta(days=30)).isoformat(),
            payment_terms="Net 30",
            company_name="Your Company Name",
            company_address="123 Business Street",
            company_city="Business City",
            company_state="State",
            company_zip="12345",
            company_country="Country",
            company_phone="+1 (555) 123-4567",
            company_email="billing@company.com",
            company_website="www.company.com",
            company_tax_id="TAX123456789",
            company_logo="",
            brand_color="#3b82f6",
            client_name="Client Company Name",
            client_address="456 Client Avenue",
            client_city="Client City",
            client_state="State",
            client_zip="67890",
            client_country="Country",
            client_email="contact@client.com",
            client_phone="+1 (555) 987-6543",
            items=[
                InvoiceItem(
                    id="1",
                    description="Professional Services",
                    quantity=1,
                    unit_price=1000,
                    code="SRV-001",
                )
            ],
            currency="USD",
            tax_rate=10,
            discount=Discount(DiscountType.PERCENTAGE, 0),
            payment_methods=["Bank Transfer", "Credit Card"],
            payment_instructions="Payment is due within 30 days of invoice date.",
            bank_details="Bank: Your Bank Name\nAccount: 1234567890\nRouting: 123456789",
            notes="Thank you for your business!",
            terms="Payment is due within 30 days. Late payments may incur additional fees.",
            status=InvoiceStatus.DRAFT,
        )

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    @classmethod
    def field_names(cls) -> List[str]:
        """Editable attribute names, including the discount aliases."""
        return [f.name for f in fields(cls)] + list(DISCOUNT_ALIASES)

    def with_field(self, name: str, value: Any) -> 'InvoiceData':
        """
        Return a copy with one field replaced.

        Accepts snake_case or camelCase names. ``discount_type`` and
        ``discount_value`` update the corresponding half of the discount.

        Raises:
            ValidationError: If the field is unknown or the value is invalid.
        """
        name = to_snake_case(name)

        if name == 'discount_type':
            return replace(self, discount=Discount(_coerce_enum(DiscountType, name, value), self.discount.value))
        if name == 'discount_value':
            return replace(self, discount=Discount(self.discount.type, _coerce_float(name, value)))
        if name not in {f.name for f in fields(self)}:
            raise ValidationError(name, value, "Unknown invoice field")

        if name == 'status':
            value = _coerce_enum(InvoiceStatus, name, value)
        elif name == 'discount':
            if not isinstance(value, Discount):
                raise ValidationError(name, value, "Expected a Discount")
        elif name == 'tax_rate':
            value = _coerce_float(name, value)
        elif name == 'items':
            value = _coerce_items(value)
        elif name == 'payment_methods':
            value = [str(method) for method in value]

        return replace(self, **{name: value})

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to a camelCase record.

        Returns:
            Dictionary suitable for JSON encoding.
        """
        record: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == 'items':
                record['items'] = [item.to_dict() for item in value]
            elif f.name == 'discount':
                record['discountType'] = value.type.value
                record['discountValue'] = value.value
            elif f.name == 'status':
                record['status'] = value.value
            elif f.name == 'payment_methods':
                record['paymentMethods'] = list(value)
            else:
                record[to_camel_case(f.name)] = value
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> 'InvoiceData':
        """
        Build an invoice from a camelCase record.

        Missing keys take their blank defaults, unknown keys are ignored.

        Raises:
            ValidationError: If enum values are invalid or item ids repeat.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}

        for key, value in record.items():
            name = to_snake_case(key)
            if name not in known or name in ('items', 'discount'):
                continue
            if name == 'status':
                value = _coerce_enum(InvoiceStatus, name, value)
            elif name == 'tax_rate':
                value = _coerce_float(name, value)
            elif name == 'payment_methods':
                value = [str(method) for method in (value or [])]
            elif value is None:
                continue
            kwargs[name] = value

        kwargs['items'] = [InvoiceItem.from_dict(item) for item in record.get('items', []) or []]
        kwargs['discount'] = Discount(
            _coerce_enum(DiscountType, 'discount_type', record.get('discountType', DiscountType.PERCENTAGE)),
            _coerce_float('discount_value', record.get('discountValue', 0)),
        )
        return cls(**kwargs)

    def find_item(self, item_id: str) -> Optional[InvoiceItem]:
        """Return the item with the given id, or None."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None


def _coerce_enum(enum_cls, name: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(name, value, f"Expected one of {allowed}")


def _coerce_float(name: str, value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        raise ValidationError(name, value, "Expected a number")


def _coerce_items(value: Any) -> List[InvoiceItem]:
    """Accept InvoiceItem objects or camelCase item records."""
    if isinstance(value, (str, bytes, dict)) or not hasattr(value, '__iter__'):
        raise ValidationError('items', value, "Expected a list of items")
    items = []
    for item in value:
        if isinstance(item, dict):
            try:
                item = InvoiceItem.from_dict(item)
            except (KeyError, TypeError, ValueError):
                raise ValidationError('items', item, "Invalid item record")
        elif not isinstance(item, InvoiceItem):
            raise ValidationError('items', item, "Expected an InvoiceItem")
        items.append(item)
    return items


def _check_unique_item_ids(items: List[InvoiceItem]) -> None:
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValidationError('items', item.id, "Duplicate item id")
        seen.add(item.id)
