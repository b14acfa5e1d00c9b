"""Session state machine for one image's watermark-removal workflow.

Architectural role:
    Owns the single `SessionState` record of a session together with the data
    the presentation layer reads (source image, preview reference, edit result).
    The HTTP adapter translates user actions into the transition methods below.

Control-flow model:
    1. `select_image` spools a new upload and returns the session to idle.
    2. `run_removal` enters processing, encodes the source, calls the edit service.
    3. The outcome lands as success (result stored) or error (message stored).
    4. `reset` returns to idle from any state and releases the preview.

Transition table:
    idle|error -> processing   `begin_processing` (requires a source image)
    processing -> success      edit service returned image data
    processing -> error        encode or remote failure
    any        -> idle         `select_image`, `reset`

Stale outcomes:
    Every selection/reset advances `epoch`. `run_removal` remembers the epoch it
    started in and drops its outcome when the epoch has moved on, so an abandoned
    remote call can never resurrect cleared state. The remote call itself is not
    cancelled. The check and the write in `complete`/`fail` are not locked, so
    every transition must run on the same event loop (the HTTP adapter declares
    all session endpoints `async`).

Error handling strategy:
    Encode/remote failures are logged and folded into stable user-facing
    messages; they never escape `run_removal`. Transition misuse raises
    `InvalidTransitionError` to the caller.
"""

import logging
from typing import Optional, Protocol

from watermark_nuker.api.multimodal.encoder import encode_source_image
from watermark_nuker.api.multimodal.image_intake import (
    accept_image,
    release_preview,
    resolve_preview,
)
from watermark_nuker.core.errors import (
    InvalidTransitionError,
    ReadError,
    RemoteCallError,
)
from watermark_nuker.core.session_types import (
    EncodedPayload,
    PreviewReference,
    RESULT_MEDIA_TYPE,
    SessionState,
    SessionStatus,
    SourceImage,
)
from watermark_nuker.editing.service import remove_watermark


logger = logging.getLogger(__name__)

PROCESSING_MESSAGE = "Nuking artifacts and restoring background..."
READ_FAILED_MESSAGE = "Error reading file."
REMOTE_FAILED_MESSAGE = "Failed to process image. Please try again or use a smaller image."
UNEXPECTED_MESSAGE = "An unexpected error occurred."

_TRIGGERABLE = (SessionStatus.IDLE, SessionStatus.ERROR)


class ImageEditClientProtocol(Protocol):
    """Minimal async interface required from the remote edit client."""

    async def aedit_image(self, payload: EncodedPayload, directive: str) -> str:
        """Return base64 data of the edited image."""
        ...


class SessionController:
    """Guarded state holder for one session.

    Args:
        client: Remote edit client used by `run_removal`.
        upload_dir: Directory receiving spooled uploads.
        max_upload_bytes: Upload size cap passed to intake; `None` disables it.
        preview_url_template: Format string with `{token}` used in snapshots.
    """

    def __init__(
        self,
        client: ImageEditClientProtocol,
        upload_dir: str,
        preview_url_template: str = "/preview/{token}",
        max_upload_bytes: Optional[int] = None,
    ):
        self._client = client
        self._upload_dir = upload_dir
        self._preview_url_template = preview_url_template
        self._max_upload_bytes = max_upload_bytes

        self._state = SessionState()
        self._source: Optional[SourceImage] = None
        self._preview: Optional[PreviewReference] = None
        self._result: Optional[str] = None
        self._instructions = ""
        self._epoch = 0

    # =========================================================
    # READ-ONLY ACCESSORS
    # =========================================================

    @property
    def state(self) -> SessionState:
        return SessionState(self._state.status, self._state.message)

    @property
    def source(self) -> Optional[SourceImage]:
        return self._source

    @property
    def preview(self) -> Optional[PreviewReference]:
        return self._preview

    @property
    def result(self) -> Optional[str]:
        return self._result

    @property
    def instructions(self) -> str:
        return self._instructions

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def result_data_url(self) -> Optional[str]:
        if self._result is None:
            return None
        return f"data:{RESULT_MEDIA_TYPE};base64,{self._result}"

    def preview_path(self, token: str) -> str:
        """Return the spooled path behind `token`.

        Raises:
            KeyError: Token does not match the current preview.
            PreviewReleasedError: Preview was already released.
        """
        if self._preview is None or self._preview.token != token:
            raise KeyError(token)
        return resolve_preview(self._preview)

    # =========================================================
    # TRANSITIONS
    # =========================================================

    def select_image(
        self,
        filename: str,
        content: bytes,
        media_type: Optional[str],
        origin: str,
    ) -> SourceImage:
        """Accept a new image and return to idle.

        Intake validation runs first; a rejected drop leaves every field,
        including the current preview, untouched.
        """
        source, preview = accept_image(
            filename, content, media_type, origin, self._upload_dir,
            max_bytes=self._max_upload_bytes,
        )

        self._clear()
        self._source = source
        self._preview = preview
        logger.info("Session selected image %s (epoch=%d)", source.name, self._epoch)
        return source

    def set_instructions(self, instructions: Optional[str]) -> None:
        self._instructions = instructions or ""

    def begin_processing(self) -> int:
        """Enter processing and return the epoch the workflow belongs to."""
        if self._source is None:
            raise InvalidTransitionError("No image selected")
        if self._state.status not in _TRIGGERABLE:
            raise InvalidTransitionError(
                f"Cannot start removal while {self._state.status.value}"
            )

        self._state = SessionState(SessionStatus.PROCESSING, PROCESSING_MESSAGE)
        return self._epoch

    def complete(self, epoch: int, result: str) -> bool:
        """Store a result for `epoch`; return `False` when the outcome is stale."""
        if not self._accepts(epoch):
            return False
        self._result = result
        self._state = SessionState(SessionStatus.SUCCESS)
        return True

    def fail(self, epoch: int, message: str) -> bool:
        """Store an error for `epoch`; return `False` when the outcome is stale."""
        if not self._accepts(epoch):
            return False
        self._state = SessionState(SessionStatus.ERROR, message)
        return True

    def reset(self) -> None:
        """Start over: clear everything and release the preview."""
        self._clear()
        logger.info("Session reset (epoch=%d)", self._epoch)

    def close(self) -> None:
        """End the session; the preview is released."""
        self._clear()

    # =========================================================
    # WORKFLOW
    # =========================================================

    async def run_removal(self, instructions: Optional[str] = None) -> SessionState:
        """Run encode -> remote edit for the current source image.

        Args:
            instructions: Optional hint; when omitted the stored hint is used.
                Stored only once the transition into processing is accepted.

        Returns:
            State after the workflow finished (or the current state when the
            outcome was discarded as stale).

        Raises:
            InvalidTransitionError: No source image, or already processing.
        """
        epoch = self.begin_processing()
        if instructions is not None:
            self.set_instructions(instructions)

        source = self._source
        hint = self._instructions

        try:
            payload = await encode_source_image(source)
            result = await remove_watermark(self._client, payload, hint)
        except ReadError:
            logger.exception("Reading %s failed", source.name)
            self._settle(self.fail(epoch, READ_FAILED_MESSAGE), epoch)
        except RemoteCallError:
            logger.exception("Remote watermark removal failed")
            self._settle(self.fail(epoch, REMOTE_FAILED_MESSAGE), epoch)
        except Exception:
            logger.exception("Unexpected failure during watermark removal")
            self._settle(self.fail(epoch, UNEXPECTED_MESSAGE), epoch)
        else:
            self._settle(self.complete(epoch, result), epoch)

        return self.state

    # =========================================================
    # PRESENTATION
    # =========================================================

    def snapshot(self) -> dict:
        """Read-only view consumed by the presentation layer."""
        source = None
        if self._source is not None:
            source = {
                "name": self._source.name,
                "media_type": self._source.media_type,
                "size": self._source.size,
                "size_mb": self._source.size_mb,
                "dimensions": list(self._source.dimensions) if self._source.dimensions else None,
            }

        preview_url = None
        if self._preview is not None and not self._preview.released:
            preview_url = self._preview_url_template.format(token=self._preview.token)

        return {
            "status": self._state.status.value,
            "message": self._state.message,
            "source": source,
            "preview_url": preview_url,
            "result_url": self.result_data_url,
            "instructions": self._instructions,
        }

    # =========================================================
    # INTERNALS
    # =========================================================

    def _accepts(self, epoch: int) -> bool:
        return epoch == self._epoch and self._state.status == SessionStatus.PROCESSING

    def _settle(self, applied: bool, epoch: int) -> None:
        if applied:
            logger.info("Session settled as %s (epoch=%d)", self._state.status.value, epoch)
        else:
            logger.warning(
                "Discarded stale removal outcome (started epoch=%d, current epoch=%d)",
                epoch,
                self._epoch,
            )

    def _clear(self) -> None:
        release_preview(self._preview)
        self._preview = None
        self._source = None
        self._result = None
        self._instructions = ""
        self._state = SessionState()
        self._epoch += 1
