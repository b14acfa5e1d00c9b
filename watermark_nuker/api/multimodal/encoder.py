"""
Binary-to-text encoding of spooled source images.

The read runs in a worker thread and produces a data URL; the prefix
(`data:<type>;base64,`) is split off so only the payload travels in the
request body.
"""

import asyncio
import base64

from watermark_nuker.core.errors import ReadError
from watermark_nuker.core.session_types import EncodedPayload, SourceImage


READ_ERROR_MESSAGE = "Error reading file."


def _read_as_data_url(path: str, media_type: str) -> str:
    with open(path, "rb") as f:
        raw = f.read()
    return f"data:{media_type};base64,{base64.b64encode(raw).decode('ascii')}"


async def encode_source_image(source: SourceImage) -> EncodedPayload:
    """
    Encode the current source image.

    Raises `ReadError` when the spooled file cannot be read (for example after
    it was released by a concurrent reset).
    """
    try:
        data_url = await asyncio.to_thread(_read_as_data_url, source.path, source.media_type)
    except OSError as err:
        raise ReadError(READ_ERROR_MESSAGE) from err

    _, encoded = data_url.split(",", 1)
    return EncodedPayload(data=encoded, mime_type=source.media_type)
