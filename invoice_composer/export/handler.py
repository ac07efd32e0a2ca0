"""
Export Handler Module.

Single entry point for export actions. Runs the requested exporter,
catches every failure and turns the outcome into a Notification naming
the export kind. Nothing is retried and the invoice is never modified.

Usage:
    handler = ExportHandler(output_dir="outputs")
    notification = handler.run(ExportKind.PDF, invoice, document, surface)
    if not notification.success:
        show_error(notification.title, notification.description)

Author: Invoice Composer Team
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from config import get_config
from invoice_composer.models.invoice import InvoiceData
from invoice_composer.rendering.tree import Document, RenderNode
from invoice_composer.utils.exceptions import MissingSourceError
from invoice_composer.utils.logger import get_logger
from .draft_exporter import DraftExporter
from .html_exporter import HtmlExporter, PrintExporter
from .job import ExportJob, ExportKind, ExportResult
from .pdf_exporter import PdfExporter

# Initialize module logger
logger = get_logger(__name__)

SUCCESS_MESSAGES = {
    ExportKind.PDF: "PDF exported successfully!",
    ExportKind.HTML: "HTML file exported successfully!",
    ExportKind.PRINT: "Print dialog opened.",
    ExportKind.DRAFT: "Draft data saved successfully!",
}


@dataclass
class Notification:
    """
    User-facing outcome of an export.

    Attributes:
        kind: Export kind.
        success: Whether an artifact was produced.
        title: Short title.
        description: Message body.
        result: The artifact, on success.
        path: Where the artifact was saved, if it was.
        job: State tracker of the invocation.
    """
    kind: ExportKind
    success: bool
    title: str
    description: str
    result: Optional[ExportResult] = None
    path: Optional[Path] = None
    job: Optional[ExportJob] = None

    @property
    def variant(self) -> str:
        return "default" if self.success else "destructive"


class ExportHandler:
    """
    Dispatches export requests and reports their outcome.

    Attributes:
        output_dir: Directory artifacts are saved to (None keeps them in memory).
    """

    def __init__(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        pdf_exporter: Optional[PdfExporter] = None,
        html_exporter: Optional[HtmlExporter] = None,
        print_exporter: Optional[PrintExporter] = None,
        draft_exporter: Optional[DraftExporter] = None
    ) -> None:
        self.output_dir = Path(output_dir) if output_dir else None
        self._pdf_exporter = pdf_exporter
        self.html_exporter = html_exporter or HtmlExporter()
        self._print_exporter = print_exporter
        self.draft_exporter = draft_exporter or DraftExporter()

    @classmethod
    def from_config(cls) -> 'ExportHandler':
        return cls(output_dir=get_config("paths.output_dir", "outputs"))

    @property
    def pdf_exporter(self) -> PdfExporter:
        if self._pdf_exporter is None:
            self._pdf_exporter = PdfExporter()
        return self._pdf_exporter

    @property
    def print_exporter(self) -> PrintExporter:
        if self._print_exporter is None:
            self._print_exporter = PrintExporter()
        return self._print_exporter

    def run(
        self,
        kind: Union[ExportKind, str],
        data: InvoiceData,
        document: Optional[Document] = None,
        source: Optional[RenderNode] = None
    ) -> Notification:
        """
        Run one export.

        Args:
            kind: pdf, html, print or draft.
            data: Invoice snapshot to export.
            document: Live document hosting the surface.
            source: Rendered invoice surface (not needed for drafts).

        Returns:
            Notification describing the outcome. Export failures are
            reported here and never raised.

        Raises:
            ValueError: If ``kind`` is not a known export kind.
        """
        kind = ExportKind(kind)
        job = ExportJob(kind)
        logger.info(f"Starting {kind.label} export for invoice {data.invoice_number}")

        try:
            result = self._export(kind, job, data, document or Document(), source)
            path = result.save(self.output_dir) if self.output_dir and kind is not ExportKind.PRINT else None
        except MissingSourceError as e:
            job.fail(e)
            logger.error(f"{kind.label} export aborted: {e}")
            return Notification(
                kind=kind,
                success=False,
                title="Error",
                description="Invoice preview not found. Please try again.",
                job=job,
            )
        except Exception as e:
            job.fail(e)
            logger.error(f"{kind.label} export failed: {e}")
            return Notification(
                kind=kind,
                success=False,
                title="Export Failed",
                description=f"Failed to export {kind.label}. Please try again.",
                job=job,
            )

        return Notification(
            kind=kind,
            success=True,
            title="Success",
            description=SUCCESS_MESSAGES[kind],
            result=result,
            path=path,
            job=job,
        )

    def _export(
        self,
        kind: ExportKind,
        job: ExportJob,
        data: InvoiceData,
        document: Document,
        source: Optional[RenderNode]
    ) -> ExportResult:
        if kind is ExportKind.PDF:
            return self.pdf_exporter.export(document, source, data, job)
        if kind is ExportKind.HTML:
            return self.html_exporter.export(document, source, data, job)
        if kind is ExportKind.PRINT:
            return self.print_exporter.export(document, source, data, job)
        return self.draft_exporter.export(data, job)
