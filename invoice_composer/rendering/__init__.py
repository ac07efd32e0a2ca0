"""
Rendering Module for Invoice Composer.

Builds and captures the rendered invoice surface:
    - RenderNode / Document: value snapshot of the surface
    - InvoicePreviewRenderer: invoice data -> render tree
    - PrintStyleNormalizer: print-friendly styling of a clone
    - Rasterizer / PillowRasterizer: render tree -> bitmap
"""

from .tree import Document, RenderNode, parse_px
from .preview import InvoicePreviewRenderer, PREVIEW_ID, PREVIEW_STYLESHEET
from .print_styles import PrintStyleNormalizer, perceived_brightness
from .rasterizer import PillowRasterizer, Rasterizer

__all__ = [
    'Document',
    'RenderNode',
    'parse_px',
    'InvoicePreviewRenderer',
    'PREVIEW_ID',
    'PREVIEW_STYLESHEET',
    'PrintStyleNormalizer',
    'perceived_brightness',
    'PillowRasterizer',
    'Rasterizer',
]
