"""
Helper Utilities Module.

Small generic functions shared across invoice composer modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - safe_filename: Sanitize filenames for filesystem
    - to_camel_case / to_snake_case: Record key conversion
    - to_iso_timestamp / parse_iso_timestamp: ISO-8601 timestamps
    - encode_data_uri / decode_data_uri: Embeddable image references
    - format_file_size: Human-readable byte counts
"""

import base64
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import unquote_to_bytes

from dateutil import parser as date_parser

_DATA_URI_PATTERN = re.compile(
    r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[\w-]+=[^;,]*)*)(?P<base64>;base64)?,(?P<data>.*)$',
    re.DOTALL
)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/exports")
        PosixPath('outputs/exports')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def safe_filename(filename: str, replacement: str = "_") -> str:
    """
    Sanitize a filename by replacing characters that filesystems reject.

    Args:
        filename: Original filename.
        replacement: Character to replace invalid characters with.

    Returns:
        Sanitized filename.

    Example:
        >>> safe_filename("invoice-INV/001.pdf")
        "invoice-INV_001.pdf"
    """
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, replacement, filename)
    sanitized = sanitized.strip('. ')

    if not sanitized:
        sanitized = "unnamed"

    return sanitized


def to_camel_case(name: str) -> str:
    """
    Convert a snake_case attribute name to a camelCase record key.

    Example:
        >>> to_camel_case("company_tax_id")
        "companyTaxId"
    """
    head, *rest = name.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def to_snake_case(name: str) -> str:
    """
    Convert a camelCase record key to a snake_case attribute name.

    Example:
        >>> to_snake_case("unitPrice")
        "unit_price"
    """
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso_timestamp(moment: datetime) -> str:
    """
    Format a datetime as an ISO-8601 UTC timestamp with millisecond precision.

    Naive datetimes are assumed to already be in UTC.

    Example:
        >>> to_iso_timestamp(datetime(2026, 1, 21, 14, 30, tzinfo=timezone.utc))
        "2026-01-21T14:30:00.000Z"
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp, returning None for empty or invalid input.

    Example:
        >>> parse_iso_timestamp("2026-01-21T14:30:00.000Z")
        datetime.datetime(2026, 1, 21, 14, 30, tzinfo=tzutc())
    """
    if not value:
        return None
    try:
        return date_parser.isoparse(value)
    except (ValueError, OverflowError):
        return None


def encode_data_uri(mime_type: str, payload: bytes) -> str:
    """
    Build a base64 ``data:`` URI.

    Example:
        >>> encode_data_uri("image/png", b"\\x89PNG")
        "data:image/png;base64,iVBORw=="
    """
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(uri: str) -> Tuple[str, bytes]:
    """
    Split a ``data:`` URI into its MIME type and decoded payload.

    Args:
        uri: The data URI.

    Returns:
        Tuple of (mime type, payload bytes).

    Raises:
        ValueError: If the string is not a well-formed data URI.
    """
    match = _DATA_URI_PATTERN.match(uri or "")
    if match is None:
        raise ValueError("Not a data URI")

    mime_type = match.group("mime") or "text/plain"
    data = match.group("data")
    if match.group("base64"):
        try:
            payload = base64.b64decode(data, validate=True)
        except ValueError as e:
            raise ValueError(f"Invalid base64 payload: {e}")
    else:
        payload = unquote_to_bytes(data)
    return mime_type, payload


def is_data_uri(value: Optional[str]) -> bool:
    """True if the value is a ``data:`` URI."""
    return bool(value) and value.startswith("data:")


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Example:
        >>> format_file_size(5242880)
        "5.0 MB"
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"
