"""
HTML and Print Exporters Module.

Text exports of the rendered invoice surface. Neither path rasterizes:
the surface's outer markup and the document's active style rules are
wrapped into a self-contained page.

    HtmlExporter   invoice-<number>.html download
    PrintExporter  print page handed to a PrintTarget

Author: Invoice Composer Team
"""

import html
import tempfile
import webbrowser
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from config import get_config
from invoice_composer.models.invoice import InvoiceData
from invoice_composer.rendering.tree import Document, RenderNode
from invoice_composer.utils.exceptions import EncodingError, MissingSourceError
from invoice_composer.utils.helpers import safe_filename
from invoice_composer.utils.logger import get_logger
from .job import ExportJob, ExportKind, ExportResult, ExportState

logger = get_logger(__name__)

HTML_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title}</title>
{styles}
<style>
body {{ margin: 0; padding: 20px; font-family: Arial, sans-serif; background-color: white; color: #1f2937; line-height: 1.4; }}
.invoice-container {{ max-width: {max_width}px; margin: 0 auto; box-shadow: none; border: 1px solid #e5e7eb; }}
@media print {{
  body {{ padding: 0; }}
  .invoice-container {{ box-shadow: none; border: none; max-width: none; margin: 0; }}
}}
@media screen and (max-width: 768px) {{
  body {{ padding: 10px; }}
  .invoice-container {{ padding: 15px; }}
}}
</style>
</head>
<body>
<div class="invoice-container">
{markup}
</div>
</body>
</html>
"""

PRINT_PAGE_TEMPLATE = """<html>
<head>
<title>{title}</title>
{styles}
<style>
body {{ margin: 0; padding: 20px; font-family: Arial, sans-serif; background-color: white; }}
@media print {{
  body {{ margin: 0; }}
  .no-print {{ display: none; }}
}}
.invoice-container {{ max-width: {max_width}px; margin: 0 auto; }}
</style>
</head>
<body>
<div class="invoice-container">
{markup}
</div>
{script}
</body>
</html>
"""

AUTO_PRINT_SCRIPT = "<script>window.addEventListener('load', function () { window.focus(); window.print(); });</script>"


def _container_width() -> int:
    return get_config("export.html.container_max_width_px", 800)


def _title(data: InvoiceData) -> str:
    return html.escape(f"Invoice {data.invoice_number}")


def build_html_page(document: Document, source: RenderNode, data: InvoiceData) -> str:
    """Self-contained HTML page for the surface."""
    return HTML_PAGE_TEMPLATE.format(
        title=_title(data),
        styles=document.style_markup(),
        max_width=_container_width(),
        markup=source.to_html(),
    )


def build_print_page(document: Document, source: RenderNode, data: InvoiceData, auto_print: bool = True) -> str:
    """Print page for the surface; optionally opens the print dialog on load."""
    return PRINT_PAGE_TEMPLATE.format(
        title=_title(data),
        styles=document.style_markup(),
        max_width=_container_width(),
        markup=source.to_html(),
        script=AUTO_PRINT_SCRIPT if auto_print else "",
    )


class HtmlExporter:
    """
    Static HTML export.

    Example:
        >>> result = HtmlExporter().export(document, surface, invoice)
        >>> result.filename
        'invoice-INV-001.html'
    """

    def export(
        self,
        document: Document,
        source: Optional[RenderNode],
        data: InvoiceData,
        job: Optional[ExportJob] = None
    ) -> ExportResult:
        """
        Raises:
            MissingSourceError: If there is no rendered surface.
        """
        job = job or ExportJob(ExportKind.HTML)
        job.advance(ExportState.PREPARING)

        if source is None:
            error = MissingSourceError(ExportKind.HTML.label)
            job.fail(error)
            raise error

        page = build_html_page(document, source, data)
        job.advance(ExportState.DONE)

        logger.info(f"HTML generated for invoice {data.invoice_number} ({len(page)} chars)")
        return ExportResult(
            kind=ExportKind.HTML,
            filename=safe_filename(f"invoice-{data.invoice_number}.html"),
            content=page.encode("utf-8"),
            mime_type="text/html",
        )


class PrintTarget(ABC):
    """Destination that presents a print page to the platform print flow."""

    @abstractmethod
    def open(self, page: str, title: str) -> None:
        """Show ``page`` and start printing."""


class BrowserPrintTarget(PrintTarget):
    """
    Opens the print page in the default web browser.

    The page is written to a temporary file and prints itself on load.
    """

    def __init__(self, directory: Optional[str] = None) -> None:
        self.directory = directory

    def open(self, page: str, title: str) -> None:
        with tempfile.NamedTemporaryFile(
            "w", suffix=".html", prefix="invoice-print-", dir=self.directory,
            delete=False, encoding="utf-8"
        ) as handle:
            handle.write(page)
            path = Path(handle.name)

        logger.info(f"Opening print page for {title}: {path}")
        if not webbrowser.open(path.as_uri()):
            raise EncodingError(ExportKind.PRINT.label, "No browser available to print")


class PrintExporter:
    """
    Print export through a PrintTarget.

    Attributes:
        target: Where the print page is sent.
    """

    def __init__(self, target: Optional[PrintTarget] = None) -> None:
        self.target = target or BrowserPrintTarget()

    def export(
        self,
        document: Document,
        source: Optional[RenderNode],
        data: InvoiceData,
        job: Optional[ExportJob] = None
    ) -> ExportResult:
        job = job or ExportJob(ExportKind.PRINT)
        job.advance(ExportState.PREPARING)

        if source is None:
            error = MissingSourceError(ExportKind.PRINT.label)
            job.fail(error)
            raise error

        page = build_print_page(document, source, data)
        try:
            self.target.open(page, f"Invoice {data.invoice_number}")
        except Exception as e:
            job.fail(e)
            raise
        job.advance(ExportState.DONE)

        return ExportResult(
            kind=ExportKind.PRINT,
            filename=safe_filename(f"invoice-{data.invoice_number}-print.html"),
            content=page.encode("utf-8"),
            mime_type="text/html",
        )
