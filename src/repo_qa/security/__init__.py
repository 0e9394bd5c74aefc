"""Sanitization, content classification and input validation primitives."""

from .paths import sanitize_entry_path, strip_archive_root
from .policy import (
    BLOCKED_DIR_NAMES,
    BLOCKED_EXTENSIONS,
    MAX_ARCHIVE_FILES,
    MAX_ENTRY_BYTES,
    PolicyBlockedError,
    is_probably_text,
    looks_binary,
)
from .validation import (
    InvalidInputError,
    validate_archive_upload,
    validate_github_url,
    validate_question,
)

__all__ = [
    "BLOCKED_DIR_NAMES",
    "BLOCKED_EXTENSIONS",
    "InvalidInputError",
    "MAX_ARCHIVE_FILES",
    "MAX_ENTRY_BYTES",
    "PolicyBlockedError",
    "is_probably_text",
    "looks_binary",
    "sanitize_entry_path",
    "strip_archive_root",
    "validate_archive_upload",
    "validate_github_url",
    "validate_question",
]
