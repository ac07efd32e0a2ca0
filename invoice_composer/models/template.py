"""
Invoice Template and Session Snapshot Data Classes.

Author: Invoice Composer Team
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from invoice_composer.utils.exceptions import ValidationError
from invoice_composer.utils.helpers import to_iso_timestamp, utc_now
from .invoice import InvoiceData


@dataclass
class InvoiceTemplate:
    """
    A named, persisted partial invoice snapshot.

    Attributes:
        id: Identifier; saving with an existing id updates that template.
        name: Display name (non-empty after trimming).
        description: Optional free text.
        data: Partial camelCase invoice record (any subset of fields).
        created_at: ISO-8601 timestamp of the first save.
        updated_at: ISO-8601 timestamp of the latest save.

    Example:
        >>> template = InvoiceTemplate.create("Monthly retainer", data=invoice.to_dict())
        >>> restored = apply_template(InvoiceData(), template)
    """
    id: str
    name: str
    description: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        description: str = "",
        data: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
        template_id: Optional[str] = None
    ) -> 'InvoiceTemplate':
        """
        Create a new template.

        Args:
            name: Template name; surrounding whitespace is trimmed.
            description: Optional description, trimmed.
            data: Partial invoice record.
            now: Creation time (defaults to the current UTC time).
            template_id: Explicit id; a random one is generated otherwise.

        Raises:
            ValidationError: If the trimmed name is empty.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("name", name, "Template name required")

        timestamp = to_iso_timestamp(now or utc_now())
        return cls(
            id=template_id or uuid.uuid4().hex,
            name=name,
            description=(description or "").strip(),
            data=dict(data or {}),
            created_at=timestamp,
            updated_at=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted template record."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'data': self.data,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> 'InvoiceTemplate':
        """Build a template from a persisted record."""
        return cls(
            id=str(record['id']),
            name=record.get('name', ''),
            description=record.get('description', '') or '',
            data=dict(record.get('data') or {}),
            created_at=record.get('createdAt', ''),
            updated_at=record.get('updatedAt', ''),
        )


def apply_template(invoice: InvoiceData, template: InvoiceTemplate) -> InvoiceData:
    """
    Overlay a template's partial snapshot onto an invoice.

    Uses the same field-wise overwrite rule as profile merging: every key
    present in the template replaces the invoice's value.

    Raises:
        ValidationError: If the template carries invalid values.
    """
    merged = invoice.to_dict()
    merged.update(template.data)
    return InvoiceData.from_dict(merged)


@dataclass
class SessionSnapshot:
    """The latest auto-saved invoice plus the time it was written."""
    data: InvoiceData
    saved_at: Optional[str] = None
