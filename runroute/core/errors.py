# runroute/core/errors.py
from typing import Optional


class RunRouteError(Exception):
    """
    Base class for every error raised by the route pipeline.
    """


class InvalidPreferencesError(RunRouteError):
    """
    Preferences were rejected before any I/O took place.
    The message is meant to be shown to the user verbatim.
    """


class LocationNotFoundError(RunRouteError):
    """The geocoder returned no match for the given text or coordinates."""


class RouteGenerationError(RunRouteError):
    """
    No candidate route could be produced for a request.

    `transient` is True when at least one variant failed on transport
    rather than with a plain "no route" answer.
    """

    def __init__(self, message: str, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class CollaboratorError(RunRouteError):
    """An external service failed (transport, auth or bad payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DirectionsError(CollaboratorError):
    pass


class ElevationError(CollaboratorError):
    pass


class GeocodingError(CollaboratorError):
    pass


class ScoringError(CollaboratorError):
    pass
