"""Security checks for uploaded GPX documents.

These run before any XML parser sees the content, so entity expansion,
external references and oversized documents never reach gpxpy.
"""

import logging
import re

from fuel_planner.errors import (
    DocumentTooLargeError,
    MalformedInputError,
    UnsafeDocumentError,
)

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB raw upload
MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB decoded text
MAX_TRACK_POINTS = 50_000
MAX_NESTED_ELEMENTS = 1000
MAX_FILENAME_LENGTH = 255

DANGEROUS_PATTERNS = [
    re.compile(r"<!ENTITY", re.IGNORECASE),
    re.compile(r"<!DOCTYPE", re.IGNORECASE),
    re.compile(r"<script[^>]*>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:", re.IGNORECASE),
    re.compile(r"file:", re.IGNORECASE),
    re.compile(r"ftp:", re.IGNORECASE),
]

# Only UTF-8 (or no declaration at all) is accepted
ENCODING_DECL_PATTERN = re.compile(r"<\?xml[^>]*encoding\s*=\s*[\"']([^\"']*)[\"']", re.IGNORECASE)
SAFE_FILENAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+\.gpx$", re.IGNORECASE)
TRACK_POINT_PATTERN = re.compile(r"<trkpt[\s>/]")


def validate_filename(filename: str) -> None:
    """Check an uploaded file name.

    Raises:
        UnsafeDocumentError: If the name has unsafe characters, a non-.gpx
            extension, or is too long.
    """
    if not filename.lower().endswith(".gpx"):
        raise UnsafeDocumentError("Invalid file extension. Only .gpx files are allowed")
    if len(filename) > MAX_FILENAME_LENGTH or not SAFE_FILENAME_PATTERN.match(filename):
        raise UnsafeDocumentError(
            "Invalid filename. Only alphanumeric characters, hyphens, underscores, and dots are allowed"
        )


def decode_document(data: bytes) -> str:
    """Decode raw upload bytes as UTF-8 after the raw size check.

    Raises:
        DocumentTooLargeError: If the upload exceeds MAX_FILE_SIZE.
        MalformedInputError: If the bytes are not valid UTF-8.
    """
    if len(data) > MAX_FILE_SIZE:
        raise DocumentTooLargeError(f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)}MB")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedInputError("Invalid text encoding. File must be UTF-8 encoded") from None


def _max_nesting_depth(content: str) -> int:
    """Count element nesting depth without parsing.

    Self-closing tags open and close in place.
    """
    max_depth = 0
    depth = 0
    for match in re.finditer(r"<(/?)([^>]*)>", content):
        closing, body = match.group(1), match.group(2)
        if closing:
            depth -= 1
        elif body.startswith(("!", "?")):
            continue
        elif body.endswith("/"):
            max_depth = max(max_depth, depth + 1)
        else:
            depth += 1
            max_depth = max(max_depth, depth)
    return max_depth


def validate_gpx_document(content: str) -> None:
    """Enforce the ingestion limits on decoded GPX text.

    Raises:
        DocumentTooLargeError: Content over MAX_CONTENT_SIZE or more than
            MAX_TRACK_POINTS track points.
        UnsafeDocumentError: Entity/doctype declarations, script or URI-scheme
            payloads, non-UTF-8 encoding declarations, or excessive nesting.
    """
    if len(content) > MAX_CONTENT_SIZE:
        raise DocumentTooLargeError(
            f"Content too large. Maximum content size is {MAX_CONTENT_SIZE // (1024 * 1024)}MB"
        )

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(content):
            logger.warning("Rejected GPX document matching %s", pattern.pattern)
            raise UnsafeDocumentError("File contains potentially dangerous content and cannot be processed")

    decl = ENCODING_DECL_PATTERN.search(content)
    if decl and decl.group(1).strip().lower() not in ("utf-8", "utf8"):
        raise UnsafeDocumentError("Unsupported document encoding. File must be UTF-8 encoded")

    if _max_nesting_depth(content) > MAX_NESTED_ELEMENTS:
        raise UnsafeDocumentError("XML structure too deeply nested")

    point_count = len(TRACK_POINT_PATTERN.findall(content))
    if point_count > MAX_TRACK_POINTS:
        raise DocumentTooLargeError(f"Too many track points. Maximum allowed is {MAX_TRACK_POINTS}")
