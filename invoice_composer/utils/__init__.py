"""
Utility Module for Invoice Composer.

Common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Filename, timestamp and data URI helpers
"""

from .logger import setup_logger, setup_logger_from_config, get_logger
from .helpers import (
    ensure_directory,
    safe_filename,
    to_iso_timestamp,
    parse_iso_timestamp,
    encode_data_uri,
    decode_data_uri,
)

__all__ = [
    'setup_logger',
    'setup_logger_from_config',
    'get_logger',
    'ensure_directory',
    'safe_filename',
    'to_iso_timestamp',
    'parse_iso_timestamp',
    'encode_data_uri',
    'decode_data_uri',
]
