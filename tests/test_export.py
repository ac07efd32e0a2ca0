"""Tests for the export pipeline: PDF, HTML, print, drafts, mailto and the handler."""

import json
from dataclasses import replace
from urllib.parse import unquote

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4, LETTER

from invoice_composer.export import (
    DraftExporter,
    ExportHandler,
    ExportJob,
    ExportKind,
    ExportState,
    HtmlExporter,
    PdfExporter,
    PdfOptions,
    PrintExporter,
    PrintTarget,
    build_mailto_link,
    load_draft,
    paginate,
)
from invoice_composer.rendering import InvoicePreviewRenderer, Rasterizer
from invoice_composer.utils.exceptions import (
    ExportError,
    MissingSourceError,
    RenderError,
    ValidationError,
)
from invoice_composer.utils.helpers import decode_data_uri


class StubRasterizer(Rasterizer):
    """Returns a white bitmap of fixed size and records what it was given."""

    def __init__(self, width=1000, height=1000, error=None):
        self.width = width
        self.height = height
        self.error = error
        self.nodes = []

    def rasterize(self, node, scale=2.0, background="#ffffff"):
        self.nodes.append(node)
        if self.error is not None:
            raise self.error
        return Image.new("RGB", (self.width, self.height), "white")


class RecordingTarget(PrintTarget):
    def __init__(self, error=None):
        self.pages = []
        self.error = error

    def open(self, page, title):
        if self.error is not None:
            raise self.error
        self.pages.append((title, page))


@pytest.fixture
def rendered(invoice):
    """(document, surface) for the sample invoice."""
    return InvoicePreviewRenderer().render_document(invoice)


# ----------------------------------------------------------------------
# Jobs and pagination
# ----------------------------------------------------------------------

def test_job_transitions():
    job = ExportJob(ExportKind.PDF)
    for state in (ExportState.PREPARING, ExportState.RENDERING, ExportState.ENCODING, ExportState.DONE):
        job.advance(state)

    assert job.finished
    assert job.history[0] is ExportState.IDLE
    with pytest.raises(ExportError):
        job.advance(ExportState.RENDERING)


def test_job_rejects_skipping_states():
    job = ExportJob(ExportKind.HTML)
    with pytest.raises(ExportError):
        job.advance(ExportState.DONE)


def test_fail_after_done_is_ignored():
    job = ExportJob(ExportKind.DRAFT)
    job.advance(ExportState.PREPARING)
    job.advance(ExportState.DONE)
    job.fail(RuntimeError("late"))

    assert job.state is ExportState.DONE
    assert job.error is None


@pytest.mark.parametrize("content,page,expected_tops", [
    (2500, 1000, [0, 1000, 2000]),
    (2000, 1000, [0, 1000]),
    (999, 1000, [0]),
    (0, 1000, [0]),
])
def test_paginate(content, page, expected_tops):
    """ceil(content / page) bands, at least one, no trailing blank page."""
    assert [band.top for band in paginate(content, page)] == expected_tops


def test_paginate_requires_positive_page_height():
    with pytest.raises(ValueError):
        paginate(100, 0)


def test_pdf_options_geometry():
    options = PdfOptions()
    width, height = options.printable_size

    assert options.page_size == A4
    assert width == pytest.approx(A4[0] - 2 * options.margin)
    assert height == pytest.approx(A4[1] - 2 * options.margin)
    assert PdfOptions(format="LETTER", orientation="landscape").page_size == (LETTER[1], LETTER[0])


@pytest.mark.parametrize("kwargs", [{"format": "a5"}, {"orientation": "sideways"}])
def test_pdf_options_validation(kwargs):
    with pytest.raises(ValidationError):
        PdfOptions(**kwargs)


def test_pdf_options_from_config():
    options = PdfOptions.from_config()
    assert (options.format, options.orientation, options.margin_mm, options.scale) == ("a4", "portrait", 20, 2)


# ----------------------------------------------------------------------
# PDF
# ----------------------------------------------------------------------

@pytest.mark.parametrize("bitmap_height,pages", [(1000, 1), (2000, 2), (4000, 3)])
def test_pdf_page_count(rendered, invoice, bitmap_height, pages):
    """Tall content is spread across as many pages as needed."""
    document, surface = rendered
    exporter = PdfExporter(rasterizer=StubRasterizer(width=1000, height=bitmap_height))

    result = exporter.export(document, surface, invoice)

    assert result.page_count == pages
    assert result.content.startswith(b"%PDF")
    assert result.filename == "invoice-INV-042.pdf"
    assert result.mime_type == "application/pdf"


def test_pdf_rasterizes_a_styled_clone(rendered, invoice):
    """The source surface is untouched and the clone is detached afterwards."""
    document, surface = rendered
    before = surface.to_html()
    rasterizer = StubRasterizer()
    job = ExportJob(ExportKind.PDF)

    PdfExporter(rasterizer=rasterizer).export(document, surface, invoice, job)

    captured = rasterizer.nodes[0]
    assert captured is not surface
    assert captured.style["width"] == "794px"
    assert captured.style["box-shadow"] == "none"
    assert surface.to_html() == before
    assert document.body.children == [surface]
    assert job.history == [
        ExportState.IDLE,
        ExportState.PREPARING,
        ExportState.RENDERING,
        ExportState.ENCODING,
        ExportState.DONE,
    ]


def test_pdf_without_source_never_rasterizes(invoice):
    rasterizer = StubRasterizer()
    job = ExportJob(ExportKind.PDF)

    with pytest.raises(MissingSourceError):
        PdfExporter(rasterizer=rasterizer).export(InvoicePreviewRenderer().render_document(invoice)[0], None, invoice, job)

    assert rasterizer.nodes == []
    assert job.history == [ExportState.IDLE, ExportState.PREPARING, ExportState.FAILED]


def test_pdf_clone_detached_on_failure(rendered, invoice):
    document, surface = rendered
    rasterizer = StubRasterizer(error=RenderError("<div>", "out of memory"))
    job = ExportJob(ExportKind.PDF)

    with pytest.raises(RenderError):
        PdfExporter(rasterizer=rasterizer).export(document, surface, invoice, job)

    assert document.body.children == [surface]
    assert job.state is ExportState.FAILED


def test_pdf_feeds_linked_images(tmp_path, invoice, png_factory):
    """Images referenced by path are embedded at print width before capture."""
    logo_path = tmp_path / "logo.png"
    logo_path.write_bytes(png_factory(600, 200))
    missing_path = tmp_path / "missing.png"

    data = invoice.with_field("company_logo", str(logo_path))
    document, surface = InvoicePreviewRenderer().render_document(data)
    surface.children[-1].append(surface.children[0].clone())
    surface.children[-1].children[-1].find(lambda n: n.tag == "img").attrs["src"] = str(missing_path)

    rasterizer = StubRasterizer()
    PdfExporter(rasterizer=rasterizer).export(document, surface, data)

    fed, skipped = rasterizer.nodes[0].find_all(lambda n: n.tag == "img")
    mime_type, payload = decode_data_uri(fed.attrs["src"])
    assert mime_type == "image/png"
    assert fed.style["max-width"] == "200px"
    assert skipped.attrs["src"] == str(missing_path)
    assert surface.find(lambda n: n.tag == "img").attrs["src"] == str(logo_path)


# ----------------------------------------------------------------------
# HTML, print and drafts
# ----------------------------------------------------------------------

def test_html_export(rendered, invoice):
    document, surface = rendered
    result = HtmlExporter().export(document, surface, invoice)
    page = result.content.decode("utf-8")

    assert result.filename == "invoice-INV-042.html"
    assert result.mime_type == "text/html"
    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Invoice INV-042</title>" in page
    assert "max-width: 800px" in page
    assert document.style_markup() in page
    assert surface.to_html() in page


def test_html_export_requires_source(invoice):
    job = ExportJob(ExportKind.HTML)
    with pytest.raises(MissingSourceError):
        HtmlExporter().export(InvoicePreviewRenderer().render_document(invoice)[0], None, invoice, job)
    assert job.state is ExportState.FAILED


def test_print_export_opens_auto_printing_page(rendered, invoice):
    document, surface = rendered
    target = RecordingTarget()

    PrintExporter(target).export(document, surface, invoice)

    title, page = target.pages[0]
    assert title == "Invoice INV-042"
    assert "window.print()" in page
    assert surface.to_html() in page


def test_draft_export(invoice):
    data = invoice.with_field("company_name", "Café Øst")
    result = DraftExporter().export(data)

    assert result.filename == "invoice-draft-INV-042.json"
    assert result.mime_type == "application/json"
    assert "Café Øst" in result.content.decode("utf-8")
    assert json.loads(result.content) == data.to_dict()


def test_load_draft_round_trip(tmp_path, invoice):
    path = DraftExporter().export(invoice).save(tmp_path)
    assert path.name == "invoice-draft-INV-042.json"
    assert load_draft(path) == invoice


@pytest.mark.parametrize("content", ["{broken", "[1, 2]", '{"status": "archived"}'])
def test_load_draft_rejects_invalid_files(tmp_path, content):
    path = tmp_path / "draft.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValidationError):
        load_draft(path)


def test_load_draft_missing_file(tmp_path):
    with pytest.raises(ValidationError):
        load_draft(tmp_path / "nope.json")


# ----------------------------------------------------------------------
# mailto
# ----------------------------------------------------------------------

def test_mailto_link(invoice):
    link = build_mailto_link(invoice)

    assert link.startswith("mailto:ap@globex.test?subject=Invoice%20INV-042%20from%20Acme%20Studio&body=")
    body = unquote(link.split("&body=", 1)[1])
    assert body.startswith("Dear Globex,")
    assert "- Amount: $99.00" in body
    assert body.endswith("Acme Studio")


def test_mailto_requires_client_email(invoice):
    with pytest.raises(ValidationError):
        build_mailto_link(replace(invoice, client_email=""))


# ----------------------------------------------------------------------
# Handler
# ----------------------------------------------------------------------

def test_handler_success_saves_artifact(tmp_path, rendered, invoice):
    document, surface = rendered
    handler = ExportHandler(output_dir=tmp_path, pdf_exporter=PdfExporter(rasterizer=StubRasterizer()))

    notification = handler.run("pdf", invoice, document, surface)

    assert notification.success
    assert notification.title == "Success"
    assert notification.description == "PDF exported successfully!"
    assert notification.variant == "default"
    assert notification.path == tmp_path / "invoice-INV-042.pdf"
    assert notification.path.read_bytes() == notification.result.content
    assert notification.job.state is ExportState.DONE


def test_handler_reports_missing_source(invoice):
    notification = ExportHandler().run(ExportKind.HTML, invoice, None, None)

    assert not notification.success
    assert notification.title == "Error"
    assert notification.description == "Invoice preview not found. Please try again."
    assert notification.variant == "destructive"
    assert notification.job.state is ExportState.FAILED


def test_handler_reports_render_failure(rendered, invoice):
    document, surface = rendered
    exporter = PdfExporter(rasterizer=StubRasterizer(error=RuntimeError("canvas exploded")))

    notification = ExportHandler(pdf_exporter=exporter).run("pdf", invoice, document, surface)

    assert notification.title == "Export Failed"
    assert notification.description == "Failed to export PDF. Please try again."
    assert notification.result is None
    assert document.body.children == [surface]


def test_handler_print_failure(rendered, invoice):
    document, surface = rendered
    handler = ExportHandler(print_exporter=PrintExporter(RecordingTarget(error=OSError("no browser"))))

    notification = handler.run("print", invoice, document, surface)

    assert notification.title == "Export Failed"
    assert notification.description == "Failed to export print. Please try again."


def test_handler_print_is_not_saved(tmp_path, rendered, invoice):
    document, surface = rendered
    handler = ExportHandler(output_dir=tmp_path, print_exporter=PrintExporter(RecordingTarget()))

    notification = handler.run("print", invoice, document, surface)

    assert notification.success
    assert notification.description == "Print dialog opened."
    assert notification.path is None
    assert list(tmp_path.iterdir()) == []


def test_handler_draft_needs_no_surface(tmp_path, invoice):
    notification = ExportHandler(output_dir=tmp_path).run("draft", invoice)

    assert notification.success
    assert notification.description == "Draft data saved successfully!"
    assert notification.path.name == "invoice-draft-INV-042.json"


def test_handler_rejects_unknown_kind(invoice):
    with pytest.raises(ValueError):
        ExportHandler().run("docx", invoice)
