"""
Imaging Module for Invoice Composer.

Logo optimization and upload handling:
    - ImageOptimizer: downscale and re-encode images as data URIs
    - LogoUploader: type/size validation with a raw-embedding fallback

Author: Invoice Composer Team
"""

from .optimizer import (
    ImageFormat,
    ImageOptimizer,
    OptimizationOptions,
    calculate_dimensions,
    create_print_ready_logo,
    optimize_company_logo,
)
from .upload import LogoUploader, LogoUploadResult, UploadedFile

__all__ = [
    'ImageFormat',
    'ImageOptimizer',
    'OptimizationOptions',
    'calculate_dimensions',
    'create_print_ready_logo',
    'optimize_company_logo',
    'LogoUploader',
    'LogoUploadResult',
    'UploadedFile',
]
