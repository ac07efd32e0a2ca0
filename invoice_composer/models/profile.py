"""
Company Profile Data Class.

The company profile is the persisted subset of an invoice describing the
issuing company. It is projected out of an invoice on save and merged back
into future invoices with a plain field-wise overwrite.

Author: Invoice Composer Team
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List

from invoice_composer.utils.helpers import to_camel_case, to_snake_case
from .invoice import InvoiceData


@dataclass
class CompanyProfile:
    """
    Reusable company identity, payment methods and bank details.

    Attributes mirror the like-named InvoiceData fields.
    """
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
    brand_color: str = ""
    payment_methods: List[str] = field(default_factory=list)
    bank_details: str = ""

    @classmethod
    def from_invoice(cls, invoice: InvoiceData) -> 'CompanyProfile':
        """Project the profile fields out of an invoice."""
        return cls(**{
            f.name: _copy(getattr(invoice, f.name)) for f in fields(cls)
        })

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase profile record."""
        return {
            to_camel_case(f.name): _copy(getattr(self, f.name)) for f in fields(self)
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> 'CompanyProfile':
        """
        Build a profile from a persisted record.

        Unknown keys are ignored; missing keys take blank defaults.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in record.items():
            name = to_snake_case(key)
            if name not in known or value is None:
                continue
            if name == 'payment_methods':
                value = [str(method) for method in value]
            else:
                value = str(value)
            kwargs[name] = value
        return cls(**kwargs)


def merge_company_profile(invoice: InvoiceData, profile: CompanyProfile) -> InvoiceData:
    """
    Overlay a profile onto an invoice.

    Every profile field overwrites the invoice field of the same name;
    there is no deep merge and no conflict resolution.

    Args:
        invoice: Current invoice.
        profile: Stored company profile.

    Returns:
        New InvoiceData with the profile applied.
    """
    return replace(invoice, **{
        f.name: _copy(getattr(profile, f.name)) for f in fields(profile)
    })


def _copy(value):
    return list(value) if isinstance(value, list) else value
