import re
from dataclasses import dataclass

import gpxpy
import gpxpy.gpx

from fuel_planner.errors import (
    EmptyTrackError,
    MalformedInputError,
    MissingRootError,
    UnsupportedVersionError,
)
from fuel_planner.models import TrackPoint
from fuel_planner.validator import decode_document, validate_filename, validate_gpx_document

DEFAULT_ROUTE_NAME = "Uploaded Route"
MAX_NAME_LENGTH = 100
SUPPORTED_VERSIONS = ("1.0", "1.1")

_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
_FIRST_ELEMENT_PATTERN = re.compile(r"<([^?!/\s>][^\s/>]*)([^>]*)>")
_VERSION_ATTR_PATTERN = re.compile(r"\bversion\s*=\s*[\"']([^\"']*)[\"']")
_UNSAFE_NAME_CHARS = re.compile(r"[<>&\"']")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


@dataclass
class GpxDocument:
    name: str
    points: list[TrackPoint]


def sanitize_name(text: str | None) -> str:
    """Strip markup and control characters from a route name and cap its length."""
    if not text:
        return DEFAULT_ROUTE_NAME
    cleaned = _CONTROL_CHARS.sub("", _UNSAFE_NAME_CHARS.sub("", text)).strip()
    cleaned = cleaned[:MAX_NAME_LENGTH].strip()
    return cleaned or DEFAULT_ROUTE_NAME


def _check_root(content: str) -> None:
    """Make sure the first element is <gpx> with a supported version."""
    match = _FIRST_ELEMENT_PATTERN.search(_COMMENT_PATTERN.sub("", content))
    if match is None or match.group(1).split(":")[-1] != "gpx":
        raise MissingRootError()
    version = _VERSION_ATTR_PATTERN.search(match.group(2))
    if version is None or version.group(1) not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError("Unsupported GPX version. Only versions 1.0 and 1.1 are supported")


def parse_gpx_text(content: str) -> GpxDocument:
    """Parse GPX text into a route name and its TrackPoints.

    Points without an <ele> element get elevation 0.

    Raises:
        MissingRootError: No <gpx> root element.
        UnsupportedVersionError: GPX version other than 1.0/1.1.
        MalformedInputError: XML syntax errors or invalid coordinates.
        EmptyTrackError: The document has no track points.
    """
    _check_root(content)
    try:
        gpx = gpxpy.parse(content)
    except (gpxpy.gpx.GPXException, ValueError) as e:
        raise MalformedInputError(f"Invalid GPX file format: {e}") from None

    points: list[TrackPoint] = []
    for track in gpx.tracks:
        for segment in track.segments:
            for pt in segment.points:
                if not (-90 <= pt.latitude <= 90 and -180 <= pt.longitude <= 180):
                    raise MalformedInputError("Invalid coordinates in track point")
                points.append(
                    TrackPoint(
                        lat=pt.latitude,
                        lon=pt.longitude,
                        elevation=pt.elevation if pt.elevation is not None else 0.0,
                    )
                )
    if not points:
        raise EmptyTrackError()

    name = gpx.name or next((t.name for t in gpx.tracks if t.name), None)
    return GpxDocument(name=sanitize_name(name), points=points)


def load_gpx_upload(data: bytes, filename: str | None = None) -> GpxDocument:
    """Validate and parse an uploaded GPX document.

    All security limits are enforced before the XML parser runs.
    """
    if filename is not None:
        validate_filename(filename)
    content = decode_document(data)
    validate_gpx_document(content)
    return parse_gpx_text(content)


def parse_gpx(filepath: str) -> GpxDocument:
    """Parse a GPX file from disk, applying the same limits as uploads."""
    with open(filepath, "rb") as f:
        data = f.read()
    return load_gpx_upload(data)
