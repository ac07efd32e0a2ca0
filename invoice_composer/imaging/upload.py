"""
Logo Upload Module.

Validates an uploaded logo file, optimizes it into a data URI and falls
back to embedding the original bytes when optimization is unavailable.

Usage:
    uploader = LogoUploader()
    result = uploader.upload(UploadedFile.from_path("logo.png"))
    if result.success:
        invoice = invoice.with_field("company_logo", result.data_uri)

Author: Invoice Composer Team
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

from config import get_config
from invoice_composer.utils.exceptions import ValidationError
from invoice_composer.utils.helpers import encode_data_uri, format_file_size
from invoice_composer.utils.logger import get_logger
from .optimizer import ImageSource, optimize_company_logo

logger = get_logger(__name__)

DEFAULT_ALLOWED_TYPES = ['image/png', 'image/jpeg', 'image/jpg', 'image/svg+xml']
DEFAULT_MAX_BYTES = 5 * 1024 * 1024


@dataclass
class UploadedFile:
    """
    A file handed over by the caller's upload widget.

    Attributes:
        filename: Original file name.
        content_type: Declared MIME type.
        size: Size in bytes.
        path: Location on disk, if the upload was spooled to a file.
        data: In-memory content, if not spooled.
    """
    filename: str
    content_type: str
    size: int
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> 'UploadedFile':
        """Describe a file on disk, guessing its MIME type from the extension."""
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content_type=content_type or guessed or 'application/octet-stream',
            size=path.stat().st_size,
            path=path,
        )

    @classmethod
    def from_bytes(cls, filename: str, content_type: str, data: bytes) -> 'UploadedFile':
        return cls(filename=filename, content_type=content_type, size=len(data), data=data)

    def read(self) -> bytes:
        """Return the raw content."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise OSError(f"No content available for {self.filename}")
        return self.path.read_bytes()

    @property
    def source(self) -> ImageSource:
        return self.path if self.path is not None else (self.data or b"")


@dataclass
class LogoUploadResult:
    """
    Outcome of a logo upload, ready to be shown as a notification.

    Attributes:
        success: Whether a logo is available.
        data_uri: The logo to store in ``company_logo``.
        optimized: False when the raw file was embedded as a fallback.
        title: Short notification title.
        description: Notification body.
    """
    success: bool
    data_uri: Optional[str] = None
    optimized: bool = False
    title: str = ""
    description: str = ""


class LogoUploader:
    """
    Upload handler for company logos.

    Attributes:
        allowed_types: Accepted MIME types.
        max_bytes: Maximum accepted file size.
        optimize: Callable turning a source into an optimized data URI.
    """

    def __init__(
        self,
        allowed_types: Optional[List[str]] = None,
        max_bytes: Optional[int] = None,
        optimize: Optional[Callable[[ImageSource], str]] = None
    ) -> None:
        self.allowed_types = allowed_types or get_config("imaging.upload.allowed_types", DEFAULT_ALLOWED_TYPES)
        self.max_bytes = max_bytes or get_config("imaging.upload.max_bytes", DEFAULT_MAX_BYTES)
        self.optimize = optimize or optimize_company_logo

    def validate(self, upload: UploadedFile) -> None:
        """
        Check type and size before any image work happens.

        Raises:
            ValidationError: If the type is not accepted or the file is too large.
        """
        if upload.content_type not in self.allowed_types:
            raise ValidationError("file", upload.filename, f"Unsupported file type {upload.content_type}")
        if upload.size > self.max_bytes:
            raise ValidationError(
                "file", upload.filename,
                f"File is {format_file_size(upload.size)}, limit is {format_file_size(self.max_bytes)}"
            )

    def upload(self, upload: UploadedFile) -> LogoUploadResult:
        """
        Validate, optimize and return the logo.

        Optimization failures fall back to a plain base64 embedding of the
        original file. Only a failing raw read yields an unsuccessful result.
        """
        try:
            self.validate(upload)
        except ValidationError as e:
            logger.warning(f"Rejected logo upload: {e.message}")
            title = "Invalid File Type" if upload.content_type not in self.allowed_types else "File Too Large"
            return LogoUploadResult(success=False, title=title, description=e.reason or e.message)

        try:
            data_uri = self.optimize(upload.source)
            logger.info(f"Logo optimized: {upload.filename}")
            return LogoUploadResult(
                success=True,
                data_uri=data_uri,
                optimized=True,
                title="Logo Uploaded",
                description="Your company logo has been optimized and uploaded successfully!",
            )
        except Exception as e:
            logger.warning(f"Logo optimization failed for {upload.filename}, embedding original: {e}")

        try:
            data_uri = encode_data_uri(upload.content_type, upload.read())
        except OSError as e:
            logger.error(f"Failed to read logo {upload.filename}: {e}")
            return LogoUploadResult(
                success=False,
                title="Upload Failed",
                description="Failed to upload logo. Please try again.",
            )

        return LogoUploadResult(
            success=True,
            data_uri=data_uri,
            optimized=False,
            title="Logo Uploaded",
            description="Logo uploaded successfully (optimization unavailable).",
        )
