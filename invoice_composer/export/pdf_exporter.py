"""
PDF Exporter Module.

Rasterization-based PDF export of the rendered invoice surface.

Pipeline:
    Preparing  the source surface must exist (MissingSourceError otherwise)
    Rendering  clone -> feed images through the optimizer -> print styles
               -> attach clone -> rasterize at 2x
    Encoding   slice the bitmap into page bands and draw each band onto
               one page at a fixed margin

The clone is detached from the document whether or not the export
succeeds.

Usage:
    exporter = PdfExporter()
    result = exporter.export(document, surface, invoice)
    result.save("outputs")

Author: Invoice Composer Team
"""

import io
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image
from reportlab.lib.pagesizes import A4, LETTER, landscape, portrait
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from config import get_config
from invoice_composer.imaging.optimizer import ImageFormat, ImageOptimizer, OptimizationOptions
from invoice_composer.models.invoice import InvoiceData
from invoice_composer.rendering.print_styles import PrintStyleNormalizer
from invoice_composer.rendering.rasterizer import PillowRasterizer, Rasterizer
from invoice_composer.rendering.tree import Document, RenderNode
from invoice_composer.utils.exceptions import (
    EncodingError,
    ImageError,
    InvoiceComposerError,
    MissingSourceError,
    ValidationError,
)
from invoice_composer.utils.helpers import is_data_uri, safe_filename
from invoice_composer.utils.logger import get_logger
from .job import ExportJob, ExportKind, ExportResult, ExportState

# Initialize module logger
logger = get_logger(__name__)

PAGE_SIZES = {
    'a4': A4,
    'letter': LETTER,
}


@dataclass
class PdfOptions:
    """
    Page geometry and capture settings.

    Attributes:
        format: Page size name ("a4" or "letter").
        orientation: "portrait" or "landscape".
        margin_mm: Margin on every side, in millimetres.
        scale: Rasterization pixel density.
        background_color: Bitmap background.
    """
    format: str = 'a4'
    orientation: str = 'portrait'
    margin_mm: float = 20.0
    scale: float = 2.0
    background_color: str = '#ffffff'

    def __post_init__(self) -> None:
        self.format = self.format.lower()
        self.orientation = self.orientation.lower()
        if self.format not in PAGE_SIZES:
            raise ValidationError("format", self.format, f"Expected one of {sorted(PAGE_SIZES)}")
        if self.orientation not in ('portrait', 'landscape'):
            raise ValidationError("orientation", self.orientation, "Expected portrait or landscape")

    @classmethod
    def from_config(cls) -> 'PdfOptions':
        return cls(
            format=get_config("export.pdf.format", "a4"),
            orientation=get_config("export.pdf.orientation", "portrait"),
            margin_mm=get_config("export.pdf.margin_mm", 20),
            scale=get_config("export.pdf.scale", 2),
            background_color=get_config("export.pdf.background_color", "#ffffff"),
        )

    @property
    def page_size(self) -> Tuple[float, float]:
        """Page (width, height) in points."""
        size = PAGE_SIZES[self.format]
        return landscape(size) if self.orientation == 'landscape' else portrait(size)

    @property
    def margin(self) -> float:
        return self.margin_mm * mm

    @property
    def printable_size(self) -> Tuple[float, float]:
        """Area inside the margins, in points."""
        width, height = self.page_size
        return width - 2 * self.margin, height - 2 * self.margin


@dataclass(frozen=True)
class PageBand:
    """A horizontal slice of the bitmap placed on one page."""
    index: int
    top: int
    height: int

    @property
    def bottom(self) -> int:
        return self.top + self.height


def paginate(content_height: int, page_height: int) -> List[PageBand]:
    """
    Split ``content_height`` into consecutive bands of ``page_height``.

    The last band may extend past the content; it is padded rather than
    cropped. Content that fits exactly produces no trailing blank page.

    Example:
        >>> [band.top for band in paginate(2500, 1000)]
        [0, 1000, 2000]
    """
    if page_height <= 0:
        raise ValueError(f"Page height must be positive, got {page_height}")
    count = max(1, math.ceil(content_height / page_height))
    return [PageBand(index, index * page_height, page_height) for index in range(count)]


class PdfExporter:
    """
    Exports the rendered invoice surface as a paginated PDF.

    Attributes:
        options: Page geometry.
        rasterizer: Captures the styled clone as a bitmap.
        normalizer: Applies print styles to the clone.
        image_optimizer: Feeds non-embedded images through at print width.
    """

    def __init__(
        self,
        options: Optional[PdfOptions] = None,
        rasterizer: Optional[Rasterizer] = None,
        normalizer: Optional[PrintStyleNormalizer] = None,
        image_optimizer: Optional[ImageOptimizer] = None
    ) -> None:
        self.options = options or PdfOptions.from_config()
        self.rasterizer = rasterizer or PillowRasterizer()
        self.normalizer = normalizer or PrintStyleNormalizer()
        self.image_optimizer = image_optimizer or ImageOptimizer(
            OptimizationOptions(
                max_width=get_config("export.pdf.image_feed_width_px", 300),
                max_height=None,
                quality=0.8,
                format=ImageFormat.PNG,
            ),
            rasterizer=self.rasterizer,
        )
        self.image_display_width = get_config("export.pdf.image_display_width_px", 200)

        logger.debug(
            f"PdfExporter initialized ({self.options.format}, {self.options.orientation}, "
            f"margin={self.options.margin_mm}mm, scale={self.options.scale})"
        )

    def export(
        self,
        document: Document,
        source: Optional[RenderNode],
        data: InvoiceData,
        job: Optional[ExportJob] = None
    ) -> ExportResult:
        """
        Produce the PDF artifact.

        Args:
            document: Live document the clone is temporarily attached to.
            source: Rendered invoice surface.
            data: Invoice being exported (brand color and number).
            job: State tracker; a new one is created if omitted.

        Returns:
            ExportResult holding the PDF bytes.

        Raises:
            MissingSourceError: If there is no rendered surface.
            RenderError: If the clone cannot be rasterized.
            EncodingError: If the PDF cannot be written.
        """
        job = job or ExportJob(ExportKind.PDF)
        job.advance(ExportState.PREPARING)

        if source is None:
            error = MissingSourceError(ExportKind.PDF.label)
            job.fail(error)
            raise error

        clone = self.normalizer.prepare_clone(source)
        try:
            job.advance(ExportState.RENDERING)
            self._feed_images(clone)
            self.normalizer.apply(clone, brand_color=data.brand_color)
            document.attach(clone)
            bitmap = self.rasterizer.rasterize(
                clone, scale=self.options.scale, background=self.options.background_color
            )

            job.advance(ExportState.ENCODING)
            payload, page_count = self._encode(bitmap, data)
            job.advance(ExportState.DONE)
        except InvoiceComposerError as e:
            job.fail(e)
            raise
        finally:
            document.detach(clone)

        logger.info(f"PDF generated for invoice {data.invoice_number}: {page_count} page(s), {len(payload)} bytes")
        return ExportResult(
            kind=ExportKind.PDF,
            filename=safe_filename(f"invoice-{data.invoice_number}.pdf"),
            content=payload,
            mime_type="application/pdf",
            page_count=page_count,
        )

    def _feed_images(self, root: RenderNode) -> int:
        """
        Re-encode images that are not embedded yet.

        Failures are logged and the image is left as it is.

        Returns:
            Number of images optimized.
        """
        optimized = 0
        for node in root.find_all(lambda n: n.tag == 'img'):
            src = node.attrs.get('src', '')
            if not src or is_data_uri(src):
                continue
            try:
                if src.startswith(('http://', 'https://')):
                    uri = self.image_optimizer.optimize_from_url(src)
                else:
                    uri = self.image_optimizer.optimize_from_file(Path(src))
            except ImageError as e:
                logger.warning(f"Failed to optimize image {src}: {e}")
                continue
            node.attrs['src'] = uri
            node.style['max-width'] = f"{self.image_display_width}px"
            node.style['height'] = 'auto'
            optimized += 1
        return optimized

    def _encode(self, bitmap: Image.Image, data: InvoiceData) -> Tuple[bytes, int]:
        """
        Draw the bitmap across pages.

        Returns:
            Tuple of (PDF bytes, page count).
        """
        page_width, page_height = self.options.page_size
        printable_width, printable_height = self.options.printable_size
        margin = self.options.margin

        # Page height expressed in bitmap pixels once scaled to page width
        band_height = max(1, round(bitmap.width * printable_height / printable_width))
        bands = paginate(bitmap.height, band_height)

        try:
            buffer = io.BytesIO()
            pdf = canvas.Canvas(buffer, pagesize=(page_width, page_height))
            pdf.setTitle(f"Invoice {data.invoice_number}")
            pdf.setAuthor(data.company_name)

            flattened = bitmap.convert("RGB")
            for band in bands:
                page_image = Image.new("RGB", (bitmap.width, band.height), (255, 255, 255))
                page_image.paste(flattened.crop((0, band.top, bitmap.width, min(band.bottom, bitmap.height))), (0, 0))

                pdf.drawImage(
                    ImageReader(page_image),
                    margin,
                    margin,
                    width=printable_width,
                    height=printable_height,
                )
                pdf.showPage()
                logger.debug(f"Page {band.index + 1}/{len(bands)}: rows {band.top}-{band.bottom}")

            pdf.save()
        except Exception as e:
            raise EncodingError(ExportKind.PDF.label, str(e))

        return buffer.getvalue(), len(bands)
