"""
Data Model Module for Invoice Composer.

Defines the records edited and persisted by a session:
    - InvoiceItem, InvoiceData, Discount, InvoiceStatus
    - CompanyProfile and the profile merge rule
    - InvoiceTemplate, SessionSnapshot and the template overlay rule
"""

from .invoice import Discount, DiscountType, InvoiceData, InvoiceItem, InvoiceStatus
from .profile import CompanyProfile, merge_company_profile
from .template import InvoiceTemplate, SessionSnapshot, apply_template

__all__ = [
    'Discount',
    'DiscountType',
    'InvoiceData',
    'InvoiceItem',
    'InvoiceStatus',
    'CompanyProfile',
    'merge_company_profile',
    'InvoiceTemplate',
    'SessionSnapshot',
    'apply_template',
]
