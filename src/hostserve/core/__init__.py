"""Core."""

from .config import ServeSettings, clear_settings, get_settings, load_config_from_file
from .exceptions import (
    HostServeError,
    IdentityError,
    InvalidMountPointError,
    InvalidPathError,
    InvalidPortError,
    InvalidURLError,
    LocalAPIError,
    MalformedDocumentError,
    NonLoopbackHostError,
    StoreError,
    UnsupportedSchemeError,
    ValidationError,
    format_error_for_user,
)

__all__ = [
    # Settings
    "ServeSettings",
    "get_settings",
    "clear_settings",
    "load_config_from_file",
    # Errors
    "HostServeError",
    "ValidationError",
    "InvalidPortError",
    "InvalidURLError",
    "UnsupportedSchemeError",
    "NonLoopbackHostError",
    "InvalidMountPointError",
    "InvalidPathError",
    "MalformedDocumentError",
    "StoreError",
    "LocalAPIError",
    "IdentityError",
    "format_error_for_user",
]
