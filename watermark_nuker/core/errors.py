"""Exception taxonomy shared by intake, encoding, remote editing, and sessions.

Architectural role:
    Gives every layer one vocabulary for failures so the session controller can
    map them onto user-facing messages and the HTTP adapter onto status codes.

Mapping overview:
    - `ValidationError`: rejected drop; no state change, HTTP 400.
    - `ReadError`: local file read failed; session error "Error reading file."
    - `RemoteCallError`: transport/service failure or missing credential.
    - `EmptyResultError`: model answered without inline image data.
    - `InvalidTransitionError`: action not allowed in the current session state.
    - `PreviewReleasedError`: preview handle used after it was released.
"""


class WatermarkNukerError(Exception):
    """Base class for all domain errors raised by this package."""


class ValidationError(WatermarkNukerError):
    """Dropped item is not an image."""


class ReadError(WatermarkNukerError):
    """Spooled source image could not be read back for encoding."""


class RemoteCallError(WatermarkNukerError):
    """Calling the remote image model failed."""


class EmptyResultError(RemoteCallError):
    """Remote call succeeded but no candidate part carried inline image data."""


class InvalidTransitionError(WatermarkNukerError):
    """Requested session transition is not allowed from the current state."""


class PreviewReleasedError(WatermarkNukerError):
    """Preview reference was read after release."""
