"""
Draft Exporter Module.

Saves the full invoice record as pretty-printed JSON so it can be backed
up or loaded again later.

Author: Invoice Composer Team
"""

import json
from pathlib import Path
from typing import Optional, Union

from invoice_composer.models.invoice import InvoiceData
from invoice_composer.utils.exceptions import EncodingError, InvoiceComposerError, ValidationError
from invoice_composer.utils.helpers import safe_filename
from invoice_composer.utils.logger import get_logger
from .job import ExportJob, ExportKind, ExportResult, ExportState

logger = get_logger(__name__)


class DraftExporter:
    """JSON draft export (``invoice-draft-<number>.json``)."""

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    def export(self, data: InvoiceData, job: Optional[ExportJob] = None) -> ExportResult:
        job = job or ExportJob(ExportKind.DRAFT)
        job.advance(ExportState.PREPARING)

        try:
            text = json.dumps(data.to_dict(), indent=self.indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            error = EncodingError(ExportKind.DRAFT.label, str(e))
            job.fail(error)
            raise error

        job.advance(ExportState.DONE)
        logger.info(f"Draft generated for invoice {data.invoice_number}")
        return ExportResult(
            kind=ExportKind.DRAFT,
            filename=safe_filename(f"invoice-draft-{data.invoice_number}.json"),
            content=text.encode("utf-8"),
            mime_type="application/json",
        )


def load_draft(path: Union[str, Path]) -> InvoiceData:
    """
    Read a draft file back into an invoice.

    Raises:
        ValidationError: If the file is not a valid invoice draft.
    """
    path = Path(path)
    try:
        record = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ValidationError("draft", str(path), f"Unreadable draft: {e}")

    if not isinstance(record, dict):
        raise ValidationError("draft", str(path), "Draft must contain a JSON object")

    try:
        return InvoiceData.from_dict(record)
    except InvoiceComposerError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError("draft", str(path), f"Malformed invoice record: {e}")
