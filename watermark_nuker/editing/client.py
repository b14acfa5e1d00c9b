"""Gemini transport client for image-edit requests.

Architectural role:
    Executes one `generateContent` call against the configured Gemini image model
    and extracts the edited image from the response.

Model invocation flow:
    `service.remove_watermark` -> `GeminiImageClient.aedit_image(payload, directive)`
    -> worker thread -> `requests` POST -> `extract_inline_image(response_json)`.

Retry behavior:
    No retry loop is implemented. Each call is attempted once. No timeout is set
    unless one is configured; the transport default applies.

Cancellation:
    Not supported. A caller that loses interest simply ignores the outcome.

Failure handling model:
    - Missing credential -> `RemoteCallError` before any network I/O.
    - Transport/HTTP failure -> `RemoteCallError` chained to the `requests` error.
    - No inline image in any candidate part -> `EmptyResultError`.
    The client only emits debug lines; the session controller logs each
    failure once, with its traceback.
"""

import asyncio
import logging
from typing import Optional

import requests

from watermark_nuker.core.errors import EmptyResultError, RemoteCallError
from watermark_nuker.core.session_types import EncodedPayload
from watermark_nuker.editing.provider_config import Settings


logger = logging.getLogger(__name__)

NO_IMAGE_DATA_MESSAGE = "No image data received from the model."


def build_request_body(payload: EncodedPayload, directive: str) -> dict:
    """Build a single-message body carrying the image and the directive as parts."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {
                        "inlineData": {
                            "mimeType": payload.mime_type,
                            "data": payload.data,
                        }
                    },
                    {"text": directive},
                ],
            }
        ]
    }


def _inline_data(part) -> Optional[dict]:
    if not isinstance(part, dict):
        return None
    inline = part.get("inlineData") or part.get("inline_data")
    return inline if isinstance(inline, dict) else None


def extract_inline_image(response_json) -> str:
    """Return the first inline image payload found in a Gemini response.

    Candidates and their parts are scanned in original order. Text parts and
    parts with empty data are skipped.

    Raises:
        EmptyResultError: No candidate part carries inline data.
    """
    candidates = []
    if isinstance(response_json, dict):
        candidates = response_json.get("candidates") or []

    for candidate in candidates:
        content = (candidate or {}).get("content") or {}
        for part in content.get("parts") or []:
            inline = _inline_data(part)
            if inline and inline.get("data"):
                return inline["data"]

    raise EmptyResultError(NO_IMAGE_DATA_MESSAGE)


class GeminiImageClient:
    """Explicitly constructed client for the Gemini image-edit endpoint.

    Args:
        api_key: Credential sent as `x-goog-api-key`.
        url: Full `generateContent` URL for the target model.
        timeout: Optional timeout in seconds; `None` keeps transport default.
        session: Optional `requests.Session` (injected in tests).
    """

    def __init__(
        self,
        api_key: Optional[str],
        url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, session=None) -> "GeminiImageClient":
        return cls(
            api_key=settings.api_key,
            url=settings.generate_url,
            timeout=settings.timeout,
            session=session,
        )

    def edit_image(self, payload: EncodedPayload, directive: str) -> str:
        """Submit one edit request and return the edited image's base64 data."""
        if not self.api_key:
            raise RemoteCallError("Gemini API key is not configured.")

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            response = self.session.post(
                self.url,
                headers=headers,
                json=build_request_body(payload, directive),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as err:
            logger.debug("Gemini request to %s failed: %s", self.url, err)
            raise RemoteCallError(_describe_http_error(err)) from err
        except ValueError as err:
            raise RemoteCallError("Gemini API returned a non-JSON body.") from err

        return extract_inline_image(data)

    async def aedit_image(self, payload: EncodedPayload, directive: str) -> str:
        """Run `edit_image` in a worker thread so the event loop stays responsive."""
        return await asyncio.to_thread(self.edit_image, payload, directive)


def _describe_http_error(err: requests.exceptions.RequestException) -> str:
    """Build an error label with the HTTP status when one is available."""
    status_code = None
    if getattr(err, "response", None) is not None:
        status_code = getattr(err.response, "status_code", None)

    if status_code:
        return f"Gemini HTTP error ({status_code})"
    return "Gemini request failed"
