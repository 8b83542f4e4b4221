"""Typed errors raised by the planner core.

Input problems raise immediately. Upstream problems raise UpstreamError
internally and are absorbed by the weather fallback chain.
"""


class FuelPlannerError(Exception):
    """Base class for all planner errors."""


class ValidationError(FuelPlannerError, ValueError):
    """Malformed caller input (postal code, profile values, ride inputs)."""


class RouteParseError(FuelPlannerError, ValueError):
    """A route document could not be turned into a Route."""


class EmptyTrackError(RouteParseError):
    """The route document contains no track points."""

    def __init__(self, message: str = "No track points found in GPX file"):
        super().__init__(message)


class MalformedInputError(RouteParseError):
    """The route document is not well-formed GPX."""


class MissingRootError(MalformedInputError):
    """The route document has no <gpx> root element."""

    def __init__(self, message: str = "Invalid GPX file: missing GPX root element"):
        super().__init__(message)


class UnsupportedVersionError(MalformedInputError):
    """The GPX version is neither 1.0 nor 1.1."""


class UnsafeDocumentError(RouteParseError):
    """The route document breaks a security limit and was not parsed."""


class DocumentTooLargeError(UnsafeDocumentError):
    """The route document exceeds the size or track point ceiling."""


class UpstreamError(FuelPlannerError):
    """A weather or geocoding upstream failed or returned an unusable payload."""
