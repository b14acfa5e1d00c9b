"""
HTTP API adapter for the watermark remover.

Architectural role:
- Map browser actions (select, hint + trigger, reset, download) to
  `SessionController` transitions.
- Serve preview bytes of the original and the processed download.
- Keep transport concerns (status codes, multipart parsing) out of the core.

Endpoint responsibilities:
- `GET /`: minimal page driving the workflow.
- `POST /api/sessions`: open a session.
- `GET /api/sessions/{id}`: state snapshot.
- `POST /api/sessions/{id}/image`: picker/drop upload.
- `GET /api/sessions/{id}/preview/{token}`: original image while the preview lives.
- `POST /api/sessions/{id}/remove`: run one removal and return the final snapshot.
- `POST /api/sessions/{id}/reset`: start over.
- `GET /api/sessions/{id}/download`: processed image as a PNG attachment.
- `DELETE /api/sessions/{id}`: end the session.

Input validation behavior:
- Unknown session -> HTTP 404.
- Non-image drop or upload above `MAX_UPLOAD_MB` -> HTTP 400, state unchanged.
- Removal without an image -> HTTP 400; while processing -> HTTP 409.

Error handling strategy:
- Validation failures return structured `{"error": ...}` JSON bodies.
- Remote/encode failures never surface as HTTP errors; they land in the session
  state as user-facing messages.

Concurrency:
- Every endpoint touching a session is `async`, so controller transitions
  all run on the event loop and never interleave with a settling removal.

Side effects:
- Spools uploads under the configured upload directory.
- Evicts sessions idle longer than `SESSION_TTL_SECONDS`.
- Releases every live preview on shutdown.
"""

import base64
import binascii
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response
from pydantic import BaseModel

from watermark_nuker.api.page import INDEX_HTML
from watermark_nuker.core.errors import (
    InvalidTransitionError,
    PreviewReleasedError,
    ValidationError,
)
from watermark_nuker.core.session_controller import SessionController
from watermark_nuker.core.session_store import SessionStore
from watermark_nuker.editing.client import GeminiImageClient
from watermark_nuker.editing.provider_config import Settings, load_settings


logger = logging.getLogger(__name__)

DOWNLOAD_FILENAME = "watermark_removed.png"


# ============================================================
# Request Schema
# ============================================================

class RemoveRequest(BaseModel):
    """Body of the removal trigger; the hint is optional."""

    instructions: Optional[str] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _unknown_session() -> JSONResponse:
    return _error(404, "Unknown session")


# ============================================================
# App Factory
# ============================================================

def create_app(
    settings: Optional[Settings] = None,
    client=None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Resolved configuration; loaded from the environment when omitted.
        client: Remote edit client; built from `settings` when omitted.
    """
    settings = settings or load_settings()
    client = client or GeminiImageClient.from_settings(settings)

    def new_controller(session_id: str) -> SessionController:
        return SessionController(
            client=client,
            upload_dir=settings.upload_dir,
            preview_url_template=f"/api/sessions/{session_id}/preview/{{token}}",
            max_upload_bytes=settings.max_upload_bytes,
        )

    store = SessionStore(new_controller, ttl=settings.session_ttl)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        store.close_all()

    app = FastAPI(title="Watermark Nuker", lifespan=lifespan)
    app.state.sessions = store
    app.state.settings = settings

    @app.get("/", response_class=HTMLResponse)
    def index():
        return INDEX_HTML

    @app.post("/api/sessions")
    async def create_session():
        session_id = store.create()
        return {"session_id": session_id, "state": store.get(session_id).snapshot()}

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str):
        try:
            controller = store.get(session_id)
        except KeyError:
            return _unknown_session()
        return controller.snapshot()

    @app.post("/api/sessions/{session_id}/image")
    async def select_image(
        session_id: str,
        file: UploadFile = File(...),
        origin: str = Form("picker"),
    ):
        try:
            controller = store.get(session_id)
        except KeyError:
            return _unknown_session()

        # One byte past the cap is enough for intake to reject oversized uploads.
        limit = settings.max_upload_bytes
        content = await file.read(limit + 1) if limit is not None else await file.read()

        try:
            controller.select_image(file.filename or "", content, file.content_type, origin)
        except ValidationError as err:
            logger.info("Rejected upload of %r (%s): %s", file.filename, file.content_type, err)
            return _error(400, str(err))
        except ValueError as err:
            return _error(400, str(err))

        return controller.snapshot()

    @app.get("/api/sessions/{session_id}/preview/{token}")
    async def get_preview(session_id: str, token: str):
        try:
            controller = store.get(session_id)
            path = controller.preview_path(token)
        except (KeyError, PreviewReleasedError):
            return _error(404, "Preview not available")

        if not os.path.exists(path):
            return _error(404, "Preview not available")

        return FileResponse(path, media_type=controller.preview.media_type)

    @app.post("/api/sessions/{session_id}/remove")
    async def remove(session_id: str, body: Optional[RemoveRequest] = None):
        try:
            controller = store.get(session_id)
        except KeyError:
            return _unknown_session()

        instructions = body.instructions if body is not None else None

        try:
            await controller.run_removal(instructions)
        except InvalidTransitionError as err:
            status_code = 400 if controller.source is None else 409
            return _error(status_code, str(err))

        return controller.snapshot()

    @app.post("/api/sessions/{session_id}/reset")
    async def reset(session_id: str):
        try:
            controller = store.get(session_id)
        except KeyError:
            return _unknown_session()
        controller.reset()
        return controller.snapshot()

    @app.get("/api/sessions/{session_id}/download")
    async def download(session_id: str):
        try:
            controller = store.get(session_id)
        except KeyError:
            return _unknown_session()

        if controller.result is None:
            return _error(404, "No processed image available")

        # Materialize the image as bytes; the data URL is only a fallback.
        try:
            image_bytes = base64.b64decode(controller.result, validate=True)
        except (binascii.Error, ValueError):
            logger.exception("Download materialization failed, falling back to data URL")
            return {"url": controller.result_data_url}

        return Response(
            content=image_bytes,
            media_type="image/png",
            headers={"Content-Disposition": f'attachment; filename="{DOWNLOAD_FILENAME}"'},
        )

    @app.delete("/api/sessions/{session_id}")
    async def end_session(session_id: str):
        if not store.close(session_id):
            return _unknown_session()
        return Response(status_code=204)

    return app
