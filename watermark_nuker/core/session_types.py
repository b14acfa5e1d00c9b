"""Data contracts shared by intake, encoding, editing, and the session controller.

Architectural role:
    Defines the records that flow through one removal workflow and the status
    vocabulary the presentation layer reads.

Ownership:
    - `SourceImage` and its `PreviewReference` belong to exactly one session.
    - `EncodedPayload` is derived from the current `SourceImage` and never reused.
    - `SessionState` is the only mutable record, owned by `SessionController`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


RESULT_MEDIA_TYPE = "image/png"


class SessionStatus(str, Enum):
    """Terminal and transient states of a session."""

    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class SourceImage:
    """User-selected file spooled to local storage.

    Attributes:
        name: Display name as sent by the browser.
        media_type: Declared (or filename-derived) media type.
        size: Byte size of the spooled content.
        path: Spooled file holding the raw bytes.
        dimensions: Pixel `(width, height)` when Pillow could read the header.
    """

    name: str
    media_type: str
    size: int
    path: str
    dimensions: Optional[Tuple[int, int]] = None

    @property
    def size_mb(self) -> float:
        return round(self.size / 1024 / 1024, 2)


@dataclass
class PreviewReference:
    """Session-local handle used to display the original image.

    Released exactly once; `released` flips to `True` on release.
    """

    token: str
    path: str
    media_type: str
    released: bool = False


@dataclass(frozen=True)
class EncodedPayload:
    """Base64 image data without data-URL prefix, plus its media type."""

    data: str
    mime_type: str


@dataclass
class SessionState:
    """Current status plus optional progress or error text."""

    status: SessionStatus = SessionStatus.IDLE
    message: Optional[str] = None
