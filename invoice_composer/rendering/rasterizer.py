"""
Rasterizer Module.

Turns a render tree into a single bitmap. The export pipeline and the
image optimizer depend only on the :class:`Rasterizer` interface, so the
layout engine can be swapped (or mocked in tests) without touching them.

:class:`PillowRasterizer` implements a small block layout:
    - block elements stack vertically with padding and margins
    - ``tr`` elements lay their cells out horizontally
    - text wraps on word boundaries; ``\\n`` forces a break
    - ``img`` elements with ``data:`` sources are decoded and pasted
    - color, font-size, line-height and text-align are inherited

Author: Invoice Composer Team
"""

import io
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from config import get_config
from invoice_composer.utils.exceptions import RenderError
from invoice_composer.utils.helpers import decode_data_uri, is_data_uri
from invoice_composer.utils.logger import get_logger
from .tree import RenderNode, parse_px

logger = get_logger(__name__)

Color = Tuple[int, int, int, int]

FALLBACK_FONTS = ("DejaVuSans.ttf", "Arial.ttf", "LiberationSans-Regular.ttf")


class Rasterizer(ABC):
    """Captures a render tree as one bitmap."""

    @abstractmethod
    def rasterize(
        self,
        node: RenderNode,
        scale: float = 2.0,
        background: Optional[str] = "#ffffff"
    ) -> Image.Image:
        """
        Render ``node`` at its natural size.

        Args:
            node: Root of the subtree to capture.
            scale: Device pixel ratio (2.0 renders at double density).
            background: Fill color, or None / ``"transparent"`` for an
                        RGBA bitmap with a transparent background.

        Returns:
            The captured bitmap.

        Raises:
            RenderError: If the subtree cannot be drawn.
        """


@dataclass(frozen=True)
class _TextStyle:
    font_size: float
    line_height: float
    color: Color
    align: str


class _Canvas:
    def __init__(self, image: Image.Image, scale: float) -> None:
        self.image = image
        self.draw = ImageDraw.Draw(image)
        self.scale = scale


class PillowRasterizer(Rasterizer):
    """
    Rasterizer drawing with Pillow's ImageDraw.

    Attributes:
        default_width: Width in CSS px used when the root has no width.
        font_size: Root font size in CSS px.
        line_height: Root line-height factor.
        font_path: Optional TrueType font file.

    Example:
        >>> bitmap = PillowRasterizer().rasterize(preview_node, scale=2)
        >>> bitmap.width
        1588
    """

    def __init__(
        self,
        default_width: Optional[float] = None,
        font_size: Optional[float] = None,
        line_height: Optional[float] = None,
        font_path: Optional[str] = None
    ) -> None:
        self.default_width = default_width or get_config("rendering.page_width_px", 794)
        self.font_size = font_size or get_config("rendering.font_size_px", 14)
        self.line_height = line_height or get_config("rendering.line_height", 1.4)
        self.font_path = font_path or get_config("rendering.font_path")

        self._fonts: Dict[int, ImageFont.ImageFont] = {}
        self._measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def rasterize(
        self,
        node: RenderNode,
        scale: float = 2.0,
        background: Optional[str] = "#ffffff"
    ) -> Image.Image:
        root_style = _TextStyle(
            font_size=self.font_size,
            line_height=self.line_height,
            color=(0, 0, 0, 255),
            align='left'
        )
        width = parse_px(node.style.get('width'), self.default_width)

        try:
            height = self._flow(node, 0, 0, width, root_style, None)
            size = (max(1, math.ceil(width * scale)), max(1, math.ceil(height * scale)))

            if background is None or background == 'transparent':
                image = Image.new("RGBA", size, (0, 0, 0, 0))
            else:
                image = Image.new("RGB", size, ImageColor.getrgb(background))

            self._flow(node, 0, 0, width, root_style, _Canvas(image, scale))
        except (OSError, ValueError, MemoryError) as e:
            logger.error(f"Rasterization failed for <{node.tag}>: {e}")
            raise RenderError(f"<{node.tag}>", str(e))

        logger.debug(f"Rasterized <{node.tag}> to {image.width}x{image.height} (scale={scale})")
        return image

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _flow(
        self,
        node: RenderNode,
        x: float,
        y: float,
        width: float,
        inherited: _TextStyle,
        canvas: Optional[_Canvas],
        min_height: float = 0.0
    ) -> float:
        """Lay out (and paint, if ``canvas`` is given) one node; returns its outer height."""
        style = node.style
        if style.get('display') == 'none':
            return 0.0

        text_style = self._inherit(node, inherited)

        if node.tag == 'br':
            return text_style.font_size * text_style.line_height
        if node.tag == 'img':
            return self._flow_image(node, x, y, width, canvas)

        margin_top = parse_px(style.get('margin-top'), 0)
        margin_bottom = parse_px(style.get('margin-bottom'), 0)
        padding = parse_px(style.get('padding'), 0)
        box_width = parse_px(style.get('width'), width, reference=width)
        inner_width = max(1.0, box_width - 2 * padding)
        top = y + margin_top

        content_height = self._flow_content(node, x + padding, top + padding, inner_width, text_style, None)
        box_height = max(content_height + 2 * padding, min_height)

        if canvas is not None:
            self._paint_box(node, x, top, box_width, box_height, canvas)
            self._flow_content(node, x + padding, top + padding, inner_width, text_style, canvas)

        return margin_top + box_height + margin_bottom

    def _flow_content(
        self,
        node: RenderNode,
        x: float,
        y: float,
        width: float,
        text_style: _TextStyle,
        canvas: Optional[_Canvas]
    ) -> float:
        height = 0.0

        if node.text:
            height += self._flow_text(node.text, x, y, width, text_style, canvas)

        if node.tag == 'tr':
            return height + self._flow_row(node, x, y + height, width, text_style, canvas)

        for child in node.children:
            height += self._flow(child, x, y + height, width, text_style, canvas)
        return height

    def _flow_row(
        self,
        row: RenderNode,
        x: float,
        y: float,
        width: float,
        text_style: _TextStyle,
        canvas: Optional[_Canvas]
    ) -> float:
        cells = [cell for cell in row.children if cell.style.get('display') != 'none']
        if not cells:
            return 0.0

        widths = self._cell_widths(cells, width)
        row_height = 0.0
        offset = x
        for cell, cell_width in zip(cells, widths):
            row_height = max(row_height, self._flow(cell, offset, y, cell_width, text_style, None))
            offset += cell_width

        if canvas is not None:
            offset = x
            for cell, cell_width in zip(cells, widths):
                self._flow(cell, offset, y, cell_width, text_style, canvas, min_height=row_height)
                offset += cell_width

        return row_height

    @staticmethod
    def _cell_widths(cells: List[RenderNode], width: float) -> List[float]:
        explicit = [parse_px(cell.style.get('width'), 0, reference=width) for cell in cells]
        remaining = max(0.0, width - sum(explicit))
        flexible = sum(1 for value in explicit if value <= 0)
        share = remaining / flexible if flexible else 0.0
        return [value if value > 0 else share for value in explicit]

    def _flow_text(
        self,
        text: str,
        x: float,
        y: float,
        width: float,
        text_style: _TextStyle,
        canvas: Optional[_Canvas]
    ) -> float:
        font = self._font(text_style.font_size)
        lines = self._wrap(text, font, width)
        line_box = text_style.font_size * text_style.line_height

        if canvas is not None:
            scaled_font = self._font(text_style.font_size * canvas.scale)
            for index, line in enumerate(lines):
                line_width = self._measure.textlength(line, font=font)
                if text_style.align == 'right':
                    left = x + width - line_width
                elif text_style.align == 'center':
                    left = x + (width - line_width) / 2
                else:
                    left = x
                top = y + index * line_box + (line_box - text_style.font_size) / 2
                canvas.draw.text(
                    (round(left * canvas.scale), round(top * canvas.scale)),
                    line,
                    font=scaled_font,
                    fill=text_style.color
                )

        return len(lines) * line_box

    def _wrap(self, text: str, font: ImageFont.ImageFont, width: float) -> List[str]:
        lines: List[str] = []
        for paragraph in text.split("\n"):
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}" if current else word
                if current and self._measure.textlength(candidate, font=font) > width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def _flow_image(
        self,
        node: RenderNode,
        x: float,
        y: float,
        width: float,
        canvas: Optional[_Canvas]
    ) -> float:
        src = node.attrs.get('src', '')
        if not is_data_uri(src):
            logger.debug(f"Skipping image without embedded data: {src[:60]}")
            return 0.0

        try:
            _, payload = decode_data_uri(src)
            picture = Image.open(io.BytesIO(payload))
            picture.load()
        except (ValueError, OSError) as e:
            logger.warning(f"Could not decode embedded image: {e}")
            return 0.0

        style = node.style
        natural_width, natural_height = picture.size
        draw_width = parse_px(style.get('width'), natural_width, reference=width)
        draw_width = min(draw_width, parse_px(style.get('max-width'), width, reference=width), width)
        draw_height = parse_px(style.get('height'), natural_height * draw_width / max(1, natural_width))

        margin_bottom = parse_px(style.get('margin-bottom'), 0)

        if canvas is not None:
            size = (max(1, round(draw_width * canvas.scale)), max(1, round(draw_height * canvas.scale)))
            scaled = picture.convert("RGBA").resize(size, Image.LANCZOS)
            canvas.image.paste(scaled, (round(x * canvas.scale), round(y * canvas.scale)), scaled)

        return draw_height + margin_bottom

    # ------------------------------------------------------------------
    # Painting helpers
    # ------------------------------------------------------------------

    def _paint_box(
        self,
        node: RenderNode,
        x: float,
        y: float,
        width: float,
        height: float,
        canvas: _Canvas
    ) -> None:
        s = canvas.scale
        box = [round(x * s), round(y * s), round((x + width) * s) - 1, round((y + height) * s) - 1]
        if box[2] < box[0] or box[3] < box[1]:
            return

        background = _parse_color(node.style.get('background-color'))
        if background is not None:
            canvas.draw.rectangle(box, fill=background)

        border = _parse_border(node.style.get('border'))
        if border is not None:
            border_width, border_color = border
            canvas.draw.rectangle(box, outline=border_color, width=max(1, round(border_width * s)))

        for side in ('top', 'bottom'):
            edge = _parse_border(node.style.get(f'border-{side}'))
            if edge is None:
                continue
            edge_width, edge_color = edge
            edge_y = box[1] if side == 'top' else box[3]
            canvas.draw.line([(box[0], edge_y), (box[2], edge_y)], fill=edge_color, width=max(1, round(edge_width * s)))

    def _inherit(self, node: RenderNode, inherited: _TextStyle) -> _TextStyle:
        style = node.style
        font_size = parse_px(style.get('font-size'), inherited.font_size)

        line_height = inherited.line_height
        if 'line-height' in style:
            raw = str(style['line-height']).strip()
            if raw.endswith('px'):
                line_height = parse_px(raw, font_size * line_height) / max(1.0, font_size)
            else:
                line_height = parse_px(raw, line_height)

        color = _parse_color(style.get('color')) or inherited.color
        align = style.get('text-align', inherited.align)
        return replace(inherited, font_size=font_size, line_height=line_height, color=color, align=align)

    def _font(self, size: float) -> ImageFont.ImageFont:
        key = max(1, int(round(size)))
        if key not in self._fonts:
            self._fonts[key] = self._load_font(key)
        return self._fonts[key]

    def _load_font(self, size: int) -> ImageFont.ImageFont:
        candidates = ([self.font_path] if self.font_path else []) + list(FALLBACK_FONTS)
        for candidate in candidates:
            try:
                return ImageFont.truetype(candidate, size)
            except OSError:
                continue
        logger.debug(f"No TrueType font found, using Pillow default at {size}px")
        return ImageFont.load_default(size=size)


def _parse_color(value: Optional[str]) -> Optional[Color]:
    if not value or value in ('transparent', 'none', 'inherit'):
        return None
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError:
        return None
    if len(rgb) == 3:
        return (*rgb, 255)
    return rgb


def _parse_border(value: Optional[str]) -> Optional[Tuple[float, Color]]:
    """Parse ``1px solid #cccccc``; ``none`` or ``0`` means no border."""
    if not value:
        return None
    parts = str(value).split()
    if not parts or parts[0] in ('none', '0', '0px'):
        return None

    border_width = parse_px(parts[0], 1)
    color: Color = (0, 0, 0, 255)
    for part in parts[1:]:
        parsed = _parse_color(part)
        if parsed is not None:
            color = parsed
    return border_width, color
