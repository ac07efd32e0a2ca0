"""
Image Optimizer Module.

This module downscales logo images and encodes them as embeddable
``data:`` URIs. Sources can be:
    - Local files, raw bytes or binary streams
    - Remote URLs (fetched with requests)
    - Render tree subtrees (captured through a Rasterizer)

Sizing rules:
    - EXIF orientation is applied before measuring
    - The image is scaled by min(max_width / w, max_height / h), never above 1
    - Dimensions are floored to integers (at least 1 px)

Author: Invoice Composer Team
"""

import io
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

import requests
from PIL import Image, ImageColor, ImageOps, UnidentifiedImageError

from config import get_config
from invoice_composer.rendering.rasterizer import PillowRasterizer, Rasterizer
from invoice_composer.rendering.tree import RenderNode
from invoice_composer.utils.exceptions import LoadError, RenderError, ValidationError
from invoice_composer.utils.helpers import encode_data_uri
from invoice_composer.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

ImageSource = Union[str, Path, bytes, BinaryIO]

TRANSPARENT = "transparent"


class ImageFormat(str, Enum):
    """Output encodings supported by the optimizer."""
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pil_format(self) -> str:
        return self.value.upper()


@dataclass
class OptimizationOptions:
    """
    Options for one optimization run.

    Attributes:
        max_width: Maximum output width in pixels (None for unbounded).
        max_height: Maximum output height in pixels (None for unbounded).
        quality: Encoder quality in [0, 1]; used by lossy formats.
        format: Output encoding.
        background_color: Fill painted behind the image, or "transparent".
    """
    max_width: Optional[int] = 300
    max_height: Optional[int] = 150
    quality: float = 0.8
    format: ImageFormat = ImageFormat.PNG
    background_color: str = TRANSPARENT

    def __post_init__(self) -> None:
        try:
            self.format = ImageFormat(self.format)
        except ValueError:
            raise ValidationError("format", self.format, "Expected png, jpeg or webp")
        if not 0 <= self.quality <= 1:
            raise ValidationError("quality", self.quality, "Expected a value between 0 and 1")
        self.background_color = self.background_color or TRANSPARENT

    @property
    def is_transparent(self) -> bool:
        return self.background_color == TRANSPARENT

    @classmethod
    def from_config(cls, section: str) -> 'OptimizationOptions':
        """
        Build options from a configuration section.

        Args:
            section: Dot-notation key, e.g. ``"imaging.logo"``.

        Example:
            >>> options = OptimizationOptions.from_config("imaging.print_logo")
            >>> options.background_color
            'white'
        """
        values: Dict[str, Any] = get_config(section, {}) or {}
        return cls(**{key: value for key, value in values.items() if key in cls.__dataclass_fields__})


def calculate_dimensions(
    width: int,
    height: int,
    max_width: Optional[int],
    max_height: Optional[int]
) -> Tuple[int, int]:
    """
    Fit ``width`` x ``height`` inside the bounds without upscaling.

    Example:
        >>> calculate_dimensions(600, 200, 300, 150)
        (300, 100)
    """
    ratios = [1.0]
    if max_width:
        ratios.append(max_width / width)
    if max_height:
        ratios.append(max_height / height)
    scale = min(ratios)
    return max(1, math.floor(width * scale)), max(1, math.floor(height * scale))


class ImageOptimizer:
    """
    Downscales and re-encodes images into data URIs.

    Attributes:
        options: OptimizationOptions for this optimizer.
        rasterizer: Rasterizer used by :meth:`optimize_from_element`.
        http_session: requests session used by :meth:`optimize_from_url`.
        timeout: URL fetch timeout in seconds.

    Example:
        >>> optimizer = ImageOptimizer(OptimizationOptions(max_width=300, max_height=150))
        >>> uri = optimizer.optimize_from_file("logo.png")
        >>> uri[:22]
        'data:image/png;base64,'
    """

    def __init__(
        self,
        options: Optional[OptimizationOptions] = None,
        rasterizer: Optional[Rasterizer] = None,
        http_session: Optional[requests.Session] = None
    ) -> None:
        self.options = options or OptimizationOptions()
        self.rasterizer = rasterizer or PillowRasterizer()
        self.http_session = http_session or requests.Session()
        self.timeout = get_config("imaging.url_timeout_seconds", 10)

        logger.debug(
            f"ImageOptimizer initialized (max={self.options.max_width}x{self.options.max_height}, "
            f"format={self.options.format.value}, quality={self.options.quality})"
        )

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def optimize_from_file(self, source: ImageSource) -> str:
        """
        Optimize an image read from a path, bytes or a binary stream.

        Raises:
            LoadError: If the source cannot be read or decoded.
            RenderError: If encoding fails.
        """
        label = self._describe(source)
        try:
            if isinstance(source, bytes):
                image = Image.open(io.BytesIO(source))
            else:
                image = Image.open(source)
            image.load()
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            logger.error(f"Failed to load image {label}: {e}")
            raise LoadError(label, str(e))

        return self._process_image(image, label)

    def optimize_from_url(self, url: str) -> str:
        """
        Fetch an image over HTTP(S) and optimize it.

        Raises:
            LoadError: If the request fails or the payload is not an image.
            RenderError: If encoding fails.
        """
        logger.info(f"Fetching image: {url}")
        try:
            response = self.http_session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch image {url}: {e}")
            raise LoadError(url, str(e))

        try:
            image = Image.open(io.BytesIO(response.content))
            image.load()
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            logger.error(f"Fetched payload is not a readable image ({url}): {e}")
            raise LoadError(url, str(e))

        return self._process_image(image, url)

    def optimize_from_element(self, node: RenderNode) -> str:
        """
        Capture a render subtree at 2x and optimize the bitmap.

        The captured bitmap is fitted within the same bounds as files.

        Raises:
            RenderError: If capture or encoding fails.
        """
        background = None if self.options.is_transparent else self.options.background_color
        image = self.rasterizer.rasterize(node, scale=2.0, background=background)
        return self._process_image(image, f"<{node.tag}>")

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _process_image(self, image: Image.Image, label: str) -> str:
        """
        Orient, resize, composite and encode an image.

        Returns:
            Data URI of the encoded result.
        """
        try:
            image = ImageOps.exif_transpose(image)
            width, height = calculate_dimensions(
                image.width, image.height, self.options.max_width, self.options.max_height
            )
            resized = image.convert("RGBA").resize((width, height), Image.LANCZOS)

            if not self.options.is_transparent:
                backdrop = Image.new("RGBA", resized.size, ImageColor.getcolor(self.options.background_color, "RGBA"))
                resized = Image.alpha_composite(backdrop, resized)

            payload = self._encode(resized)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to optimize image {label}: {e}")
            raise RenderError(label, str(e))

        logger.debug(
            f"Optimized {label}: {image.width}x{image.height} -> {width}x{height} "
            f"({len(payload)} bytes, {self.options.format.value})"
        )
        return encode_data_uri(self.options.format.mime_type, payload)

    def _encode(self, image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        fmt = self.options.format

        if fmt is ImageFormat.JPEG:
            # JPEG has no alpha; transparent areas end up white
            flattened = Image.new("RGB", image.size, (255, 255, 255))
            flattened.paste(image, mask=image.getchannel("A"))
            flattened.save(buffer, format=fmt.pil_format, quality=int(self.options.quality * 100))
        elif fmt is ImageFormat.WEBP:
            image.save(buffer, format=fmt.pil_format, quality=int(self.options.quality * 100))
        else:
            image.save(buffer, format=fmt.pil_format, optimize=True)

        return buffer.getvalue()

    @staticmethod
    def _describe(source: ImageSource) -> str:
        if isinstance(source, (str, Path)):
            return str(source)
        if isinstance(source, bytes):
            return f"<{len(source)} bytes>"
        return getattr(source, 'name', '<stream>')


def optimize_company_logo(source: ImageSource) -> str:
    """
    Optimize an uploaded company logo (300x150, PNG, transparent).

    Example:
        >>> invoice = invoice.with_field("company_logo", optimize_company_logo("logo.png"))
    """
    options = OptimizationOptions.from_config("imaging.logo")
    return ImageOptimizer(options).optimize_from_file(source)


def create_print_ready_logo(url: str) -> str:
    """Fetch and optimize a logo for print (200x100, PNG, white background)."""
    options = OptimizationOptions.from_config("imaging.print_logo")
    return ImageOptimizer(options).optimize_from_url(url)
