"""
Image intake for uploads coming from the file picker or a drag-and-drop gesture.

Architectural role:
- Validate dropped items before anything touches session state.
- Spool accepted bytes to a temporary file under the upload directory.
- Create and release the preview reference used to display the original.

Processing lifecycle:
1. Check the origin: drops must declare an `image/` media type; picker files
   are trusted to the browser's file-type filter.
2. Reject content above the size cap; complete a missing or generic media
   type from the file name.
3. Write the bytes to a temp file under `upload_dir`.
4. Probe pixel dimensions with Pillow (best effort).
5. Return `SourceImage` plus a fresh `PreviewReference` sharing the spooled file.

Error handling strategy:
- Rejected drops raise `ValidationError`; nothing is written.
- Unreadable image headers only leave `dimensions` as `None`.

Side effects:
- Creates `upload_dir` on demand.
- `release_preview` removes the spooled file exactly once.
"""

import logging
import mimetypes
import os
import tempfile
import uuid
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from watermark_nuker.core.errors import PreviewReleasedError, ValidationError
from watermark_nuker.core.session_types import PreviewReference, SourceImage


logger = logging.getLogger(__name__)

ORIGIN_PICKER = "picker"
ORIGIN_DROP = "drop"
ORIGINS = (ORIGIN_PICKER, ORIGIN_DROP)

INVALID_DROP_MESSAGE = "Please drop a valid image file"
TOO_LARGE_MESSAGE = "File exceeds max size limit"

GENERIC_MEDIA_TYPE = "application/octet-stream"

_SUFFIX_BY_TYPE = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


# ============================================================
# PUBLIC ENTRYPOINTS
# ============================================================

def accept_image(
    filename: str,
    content: bytes,
    media_type: Optional[str],
    origin: str,
    upload_dir: str,
    max_bytes: Optional[int] = None,
) -> Tuple[SourceImage, PreviewReference]:
    """
    Accept one selected file and spool it for the session.

    Input validation behavior:
    - Unknown origins raise `ValueError`.
    - Drops whose media type does not start with `image/` raise `ValidationError`.
    - Content larger than `max_bytes` raises `ValidationError`.
    - A generic `application/octet-stream` type is completed from the file name.
    """
    if origin not in ORIGINS:
        raise ValueError(f"Unknown intake origin: {origin}")

    declared = (media_type or "").strip().lower()

    if origin == ORIGIN_DROP and not declared.startswith("image/"):
        raise ValidationError(INVALID_DROP_MESSAGE)

    if max_bytes is not None and len(content) > max_bytes:
        raise ValidationError(TOO_LARGE_MESSAGE)

    resolved_type = declared
    if not resolved_type or resolved_type == GENERIC_MEDIA_TYPE:
        resolved_type = _guess_media_type(filename)
    path = _spool_to_temp(content, resolved_type, upload_dir)

    source = SourceImage(
        name=filename or os.path.basename(path),
        media_type=resolved_type,
        size=len(content),
        path=path,
        dimensions=_probe_dimensions(path),
    )
    preview = PreviewReference(
        token=uuid.uuid4().hex,
        path=path,
        media_type=resolved_type,
    )

    logger.info("Accepted %s (%s, %d bytes) via %s", source.name, resolved_type, source.size, origin)
    return source, preview


def resolve_preview(preview: PreviewReference) -> str:
    """Return the backing path of a live preview; raise once released."""
    if preview.released:
        raise PreviewReleasedError("Preview reference has been released")
    return preview.path


def release_preview(preview: Optional[PreviewReference]) -> bool:
    """
    Release a preview reference and remove its spooled file.

    Returns `True` when this call performed the release, `False` for `None` or
    an already released reference.
    """
    if preview is None or preview.released:
        return False

    preview.released = True
    if os.path.exists(preview.path):
        try:
            os.remove(preview.path)
        except OSError:
            logger.exception("Failed to remove spooled preview %s", preview.path)
    return True


# ============================================================
# HELPERS
# ============================================================

def _guess_media_type(filename: str) -> str:
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or GENERIC_MEDIA_TYPE


def _spool_to_temp(content: bytes, media_type: str, upload_dir: str) -> str:
    """Write bytes to a temp file under `upload_dir` and return its path."""
    os.makedirs(upload_dir, exist_ok=True)

    suffix = _SUFFIX_BY_TYPE.get(media_type) or mimetypes.guess_extension(media_type) or ".tmp"

    temp_file = tempfile.NamedTemporaryFile(
        delete=False,
        suffix=suffix,
        dir=upload_dir,
    )
    try:
        temp_file.write(content)
    finally:
        temp_file.close()

    return temp_file.name


def _probe_dimensions(path: str) -> Optional[Tuple[int, int]]:
    """Read pixel size from the image header; `None` when Pillow cannot parse it."""
    try:
        with Image.open(path) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        return None
