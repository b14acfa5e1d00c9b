"""Watermark-removal service used by the session controller.

Role in pipeline:
    - Receives an encoded payload and the optional user hint.
    - Composes the directive via `watermark_nuker.prompting.directive_builder`.
    - Delegates the single remote call to an injected `GeminiImageClient`.

Error handling strategy:
    - Exceptions from the client are intentionally propagated; the controller
      maps them to session messages.

Determinism:
    - Directive composition is deterministic for fixed inputs.
    - Output content remains externally non-deterministic.
"""

from typing import Optional

from watermark_nuker.core.session_types import EncodedPayload
from watermark_nuker.prompting.directive_builder import build_directive


async def remove_watermark(
    client,
    payload: EncodedPayload,
    instructions: Optional[str] = None,
) -> str:
    """Remove watermarks from one encoded image.

    Args:
        client: Object exposing `aedit_image(payload, directive)`.
        payload: Encoded source image.
        instructions: Optional free-text hint.

    Returns:
        Base64 data of the edited image.
    """
    directive = build_directive(instructions)
    return await client.aedit_image(payload, directive)
