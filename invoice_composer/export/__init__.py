"""
Export Module for Invoice Composer.

This module turns the current invoice into shareable artifacts:
    - PDF (rasterized, paginated)
    - Static HTML and print pages
    - JSON drafts
    - mailto: hand-off links

Author: Invoice Composer Team
"""

from .job import ExportJob, ExportKind, ExportResult, ExportState
from .pdf_exporter import PageBand, PdfExporter, PdfOptions, paginate
from .html_exporter import BrowserPrintTarget, HtmlExporter, PrintExporter, PrintTarget
from .draft_exporter import DraftExporter, load_draft
from .email_link import build_mailto_link
from .handler import ExportHandler, Notification

__all__ = [
    'ExportJob',
    'ExportKind',
    'ExportResult',
    'ExportState',
    'PageBand',
    'PdfExporter',
    'PdfOptions',
    'paginate',
    'BrowserPrintTarget',
    'HtmlExporter',
    'PrintExporter',
    'PrintTarget',
    'DraftExporter',
    'load_draft',
    'build_mailto_link',
    'ExportHandler',
    'Notification',
]
