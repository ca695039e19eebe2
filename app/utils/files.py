# app/utils/files.py
"""Filename sanitization and MIME type lookup for uploads."""

import re
from typing import Optional

from app.core.config import settings

DEFAULT_MIME_TYPE = "application/octet-stream"

_WHITESPACE_RUN = re.compile(r"\s+")
_DISALLOWED_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")

MIME_TYPES = {
    # Documents
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/markdown",
    "json": "application/json",
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
    "xml": "application/xml",
    "yaml": "text/yaml",
    "yml": "text/yaml",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    # Spreadsheets / presentations
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # Code
    "js": "text/javascript",
    "ts": "application/typescript",
    "html": "text/html",
    "css": "text/css",
    # Archives
    "zip": "application/zip",
}


def clean_filename(name: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize an uploaded filename.

    Whitespace runs become a single underscore, every character outside
    [A-Za-z0-9_.-] becomes an underscore, and the result is truncated.
    Applying it twice gives the same result as applying it once.
    """
    limit = max_length if max_length is not None else settings.MAX_FILENAME_LENGTH
    cleaned = (name or "").strip()
    cleaned = _WHITESPACE_RUN.sub("_", cleaned)
    cleaned = _DISALLOWED_CHARS.sub("_", cleaned)
    return cleaned[:limit] or "file"


def detect_mime_type(filename: Optional[str], fallback: str = DEFAULT_MIME_TYPE) -> str:
    """Map the extension after the last '.' to a MIME type."""
    if not filename or "." not in filename:
        return fallback
    extension = filename.rsplit(".", 1)[-1].lower()
    return MIME_TYPES.get(extension, fallback)
