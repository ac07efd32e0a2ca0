"""
Print Style Normalization Module.

Pure transformations applied to a cloned render tree before it is
rasterized for the PDF path:

    1. Off-screen placement at a fixed page width with print base styles
    2. Shadows and rounded corners removed
    3. Light inline text colors darkened for legibility
    4. Tables collapsed to uniform 1px cell borders with fixed padding
    5. The brand-colored header emboldened
    6. Sections marked to avoid breaking inside

None of these functions touch the live document; they only mutate the
clone they are given.

Author: Invoice Composer Team
"""

import re
from typing import Optional

from PIL import ImageColor

from config import get_config
from invoice_composer.utils.logger import get_logger
from .tree import RenderNode

logger = get_logger(__name__)

# Base styles for the off-screen print clone
PRINT_BASE_STYLE = {
    'position': 'fixed',
    'top': '-9999px',
    'left': '0',
    'background-color': '#ffffff',
    'color': '#000000',
    'font-family': 'Arial, sans-serif',
    'font-size': '14px',
    'line-height': '1.4',
    'padding': '40px',
    'box-sizing': 'border-box',
}

TABLE_CELL_BORDER = '1px solid #cccccc'
TABLE_CELL_PADDING = '8px'

# rgb()/rgba() with any alpha; only the color channels are read
RGB_FUNCTION_PATTERN = re.compile(r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")


def perceived_brightness(color: Optional[str]) -> Optional[float]:
    """
    Average of the red, green and blue channels (0-255).

    Args:
        color: Any CSS color Pillow understands (``#fff``, ``rgb(...)``, names),
               or an ``rgba(...)`` with a fractional alpha.

    Returns:
        Brightness, or None if the value is not a parseable color.

    Example:
        >>> perceived_brightness("rgb(200, 200, 200)")
        200.0
    """
    if not color:
        return None
    color = color.strip()
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        match = RGB_FUNCTION_PATTERN.match(color.lower())
        if match is None:
            return None
        rgb = tuple(int(channel) for channel in match.groups())
    return sum(rgb[:3]) / 3


class PrintStyleNormalizer:
    """
    Applies print-friendly styling to a render tree clone.

    Attributes:
        page_width_px: Fixed clone width (A4 printable width at 96 DPI).
        brightness_threshold: Inline colors brighter than this are darkened.
        darkened_color: Replacement color for light text.

    Example:
        >>> normalizer = PrintStyleNormalizer()
        >>> clone = normalizer.prepare_clone(preview)
        >>> normalizer.apply(clone, brand_color="#3b82f6")
    """

    def __init__(
        self,
        page_width_px: Optional[float] = None,
        brightness_threshold: Optional[float] = None,
        darkened_color: Optional[str] = None
    ) -> None:
        self.page_width_px = page_width_px or get_config("rendering.page_width_px", 794)
        self.brightness_threshold = (
            brightness_threshold if brightness_threshold is not None
            else get_config("export.pdf.brightness_threshold", 150)
        )
        self.darkened_color = darkened_color or get_config("export.pdf.darkened_text_color", "#333333")

    def prepare_clone(self, source: RenderNode) -> RenderNode:
        """
        Deep-clone ``source`` and place the clone off-screen at page width.

        Returns:
            The clone; ``source`` is left untouched.
        """
        clone = source.clone()
        clone.style.update(PRINT_BASE_STYLE)
        clone.style['width'] = f"{self.page_width_px:g}px"
        return clone

    def apply(self, root: RenderNode, brand_color: Optional[str] = None) -> RenderNode:
        """
        Run every normalization step on ``root`` in place.

        Args:
            root: Cloned subtree.
            brand_color: Invoice brand color used to find the header.

        Returns:
            The same root, for chaining.
        """
        stripped = self.strip_decorations(root)
        darkened = self.darken_light_text(root)
        tables = self.normalize_tables(root)
        self.emphasize_brand_header(root, brand_color)
        self.avoid_section_breaks(root)

        logger.debug(
            f"Print styles applied (decorations={stripped}, darkened={darkened}, tables={tables})"
        )
        return root

    @staticmethod
    def strip_decorations(root: RenderNode) -> int:
        """Remove shadows and corner rounding; returns the number of nodes changed."""
        changed = 0
        for node in root.iter():
            touched = False
            if node.has_class_fragment('shadow') or 'box-shadow' in node.style:
                node.style['box-shadow'] = 'none'
                touched = True
            if node.has_class_fragment('rounded') or 'border-radius' in node.style:
                node.style['border-radius'] = '0'
                touched = True
            changed += touched
        return changed

    def darken_light_text(self, root: RenderNode) -> int:
        """Replace inline text colors brighter than the threshold; returns the count."""
        changed = 0
        for node in root.iter():
            brightness = perceived_brightness(node.style.get('color'))
            if brightness is not None and brightness > self.brightness_threshold:
                node.style['color'] = self.darkened_color
                changed += 1
        return changed

    @staticmethod
    def normalize_tables(root: RenderNode) -> int:
        """Collapse table borders and give every cell a uniform border and padding."""
        tables = root.find_all(lambda node: node.tag == 'table')
        for table in tables:
            table.style['border-collapse'] = 'collapse'
            table.style['width'] = '100%'
            for cell in table.iter():
                if cell.tag in ('td', 'th'):
                    cell.style['border'] = TABLE_CELL_BORDER
                    cell.style['padding'] = TABLE_CELL_PADDING
        return len(tables)

    @staticmethod
    def emphasize_brand_header(root: RenderNode, brand_color: Optional[str]) -> Optional[RenderNode]:
        """Bold the first node whose inline color is the brand color."""
        if not brand_color:
            return None
        wanted = brand_color.strip().lower()
        header = root.find(lambda node: node.style.get('color', '').strip().lower() == wanted)
        if header is not None:
            header.style['color'] = brand_color
            header.style['font-weight'] = 'bold'
        return header

    @staticmethod
    def avoid_section_breaks(root: RenderNode) -> None:
        """Mark invoice sections (after the first) as break-inside: avoid."""
        sections = []
        for node in root.iter():
            if 'space-y-6' in node.classes:
                sections.extend(node.children)
            elif 'mb-8' in node.classes:
                sections.append(node)

        seen = set()
        for index, section in enumerate(sections):
            if id(section) in seen:
                continue
            seen.add(id(section))
            if index > 0:
                section.style['page-break-inside'] = 'avoid'
                section.style['break-inside'] = 'avoid'
