import asyncio
import base64
import logging
import os

import pytest
import requests

from conftest import FakeEditClient, FakeSession
from watermark_nuker.core.errors import EmptyResultError, InvalidTransitionError, ValidationError
from watermark_nuker.core.session_controller import (
    PROCESSING_MESSAGE,
    READ_FAILED_MESSAGE,
    REMOTE_FAILED_MESSAGE,
    UNEXPECTED_MESSAGE,
    SessionController,
)
from watermark_nuker.core.session_types import SessionStatus
from watermark_nuker.editing.client import GeminiImageClient


@pytest.fixture
def controller(tmp_path, fake_client):
    return SessionController(fake_client, str(tmp_path))


def test_select_image_starts_idle_and_replaces_preview(controller, png_bytes):
    controller.select_image("first.png", png_bytes, "image/png", "picker")
    first = controller.preview

    controller.select_image("second.png", png_bytes, "image/png", "drop")

    assert controller.state.status == SessionStatus.IDLE
    assert controller.source.name == "second.png"
    assert first.released
    assert not os.path.exists(first.path)
    assert not controller.preview.released


def test_rejected_drop_changes_nothing(controller, png_bytes):
    controller.select_image("keep.png", png_bytes, "image/png", "picker")
    preview = controller.preview
    epoch = controller.epoch

    with pytest.raises(ValidationError):
        controller.select_image("notes.txt", b"hi", "text/plain", "drop")

    assert controller.source.name == "keep.png"
    assert controller.preview is preview and not preview.released
    assert controller.epoch == epoch


def test_scenario_success(controller, fake_client, run):
    content = b"\x89PNG" + b"\0" * (2 * 1024 * 1024 - 4)
    controller.select_image("logo.png", content, "image/png", "picker")

    state = run(controller.run_removal("remove bottom-right mark"))

    assert state.status == SessionStatus.SUCCESS
    assert state.message is None
    assert controller.result == "Zm9v"
    assert controller.result_data_url == "data:image/png;base64,Zm9v"
    assert controller.source.size_mb == 2.0

    payload, directive = fake_client.calls[0]
    assert payload.mime_type == "image/png"
    assert base64.b64decode(payload.data) == content
    assert "Specific user requirement: remove bottom-right mark" in directive


def test_processing_message_is_set_while_in_flight(tmp_path, png_bytes):
    client = FakeEditClient()
    controller = SessionController(client, str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    seen = {}

    async def scenario():
        client.gate = asyncio.Event()
        client.started = asyncio.Event()
        task = asyncio.create_task(controller.run_removal())
        await client.started.wait()
        seen["state"] = controller.state
        with pytest.raises(InvalidTransitionError):
            controller.begin_processing()
        client.gate.set()
        await task

    asyncio.run(scenario())

    assert seen["state"].status == SessionStatus.PROCESSING
    assert seen["state"].message == PROCESSING_MESSAGE
    assert controller.state.status == SessionStatus.SUCCESS


def test_network_error_scenario(tmp_path, png_bytes, run):
    session = FakeSession(error=requests.exceptions.ConnectionError("offline"))
    client = GeminiImageClient(api_key="k", url="http://example.invalid", session=session)
    controller = SessionController(client, str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")

    state = run(controller.run_removal())

    assert state.status == SessionStatus.ERROR
    assert state.message == "Failed to process image. Please try again or use a smaller image."
    assert controller.result is None


def test_empty_result_uses_remote_failure_message(tmp_path, png_bytes, run):
    controller = SessionController(FakeEditClient(error=EmptyResultError("none")), str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")

    assert run(controller.run_removal()).message == REMOTE_FAILED_MESSAGE


def test_unexpected_failure_message(tmp_path, png_bytes, run):
    controller = SessionController(FakeEditClient(error=KeyError("x")), str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")

    assert run(controller.run_removal()).message == UNEXPECTED_MESSAGE


def test_read_failure_message(controller, png_bytes, fake_client, run):
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    os.remove(controller.source.path)

    state = run(controller.run_removal())

    assert state.status == SessionStatus.ERROR
    assert state.message == READ_FAILED_MESSAGE
    assert fake_client.calls == []


def test_retry_after_error(tmp_path, png_bytes, run):
    client = FakeEditClient(error=EmptyResultError("none"))
    controller = SessionController(client, str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    run(controller.run_removal())

    client.error = None
    state = run(controller.run_removal())

    assert state.status == SessionStatus.SUCCESS
    assert len(client.calls) == 2


def test_trigger_requires_image(controller, run):
    with pytest.raises(InvalidTransitionError):
        run(controller.run_removal())
    assert controller.state.status == SessionStatus.IDLE


def test_trigger_rejected_after_success(controller, png_bytes, run):
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    run(controller.run_removal())

    with pytest.raises(InvalidTransitionError):
        controller.begin_processing()


@pytest.mark.parametrize("outcome", ["success", "failure"])
def test_reset_mid_processing_ignores_late_outcome(tmp_path, png_bytes, outcome):
    error = EmptyResultError("late") if outcome == "failure" else None
    client = FakeEditClient(result="bGF0ZQ==", error=error)
    controller = SessionController(client, str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    preview = controller.preview

    async def scenario():
        client.gate = asyncio.Event()
        client.started = asyncio.Event()
        task = asyncio.create_task(controller.run_removal("hint"))
        await client.started.wait()
        controller.reset()
        client.gate.set()
        return await task

    final = asyncio.run(scenario())

    assert final.status == SessionStatus.IDLE
    assert controller.state.message is None
    assert controller.source is None
    assert controller.result is None
    assert preview.released


def test_stale_outcome_does_not_touch_new_selection(tmp_path, png_bytes):
    client = FakeEditClient(result="b2xk")
    controller = SessionController(client, str(tmp_path))
    controller.select_image("old.png", png_bytes, "image/png", "picker")

    async def scenario():
        client.gate = asyncio.Event()
        client.started = asyncio.Event()
        task = asyncio.create_task(controller.run_removal())
        await client.started.wait()
        controller.select_image("new.png", png_bytes, "image/png", "picker")
        client.gate.set()
        await task

    asyncio.run(scenario())

    assert controller.source.name == "new.png"
    assert controller.state.status == SessionStatus.IDLE
    assert controller.result is None


def test_reset_clears_everything(controller, png_bytes, run):
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    run(controller.run_removal("keep the caption"))
    preview = controller.preview

    controller.reset()

    snapshot = controller.snapshot()
    assert snapshot == {
        "status": "idle",
        "message": None,
        "source": None,
        "preview_url": None,
        "result_url": None,
        "instructions": "",
    }
    assert preview.released


def test_snapshot_exposes_source_metadata(controller, png_bytes):
    controller.select_image("a.png", png_bytes, "image/png", "picker")

    snapshot = controller.snapshot()

    assert snapshot["source"]["name"] == "a.png"
    assert snapshot["source"]["dimensions"] == [4, 3]
    assert snapshot["preview_url"] == f"/preview/{controller.preview.token}"
    assert controller.preview_path(controller.preview.token) == controller.source.path
    with pytest.raises(KeyError):
        controller.preview_path("other")


def test_rejected_trigger_keeps_stored_hint(controller, png_bytes, run):
    controller.select_image("a.png", png_bytes, "image/png", "picker")
    run(controller.run_removal("keep the caption"))

    with pytest.raises(InvalidTransitionError):
        run(controller.run_removal("something else"))

    assert controller.instructions == "keep the caption"
    assert controller.snapshot()["instructions"] == "keep the caption"


def test_trigger_without_image_does_not_store_hint(controller, run):
    with pytest.raises(InvalidTransitionError):
        run(controller.run_removal("hint"))
    assert controller.instructions == ""


def test_remote_failure_logged_once_with_traceback(tmp_path, png_bytes, run, caplog):
    session = FakeSession(error=requests.exceptions.ConnectionError("offline"))
    client = GeminiImageClient(api_key="k", url="http://example.invalid", session=session)
    controller = SessionController(client, str(tmp_path))
    controller.select_image("a.png", png_bytes, "image/png", "picker")

    with caplog.at_level(logging.DEBUG, logger="watermark_nuker"):
        run(controller.run_removal())

    with_traceback = [record for record in caplog.records if record.exc_info]
    assert len(with_traceback) == 1
    assert with_traceback[0].name == "watermark_nuker.core.session_controller"


def test_upload_cap_is_applied(tmp_path, png_bytes):
    controller = SessionController(FakeEditClient(), str(tmp_path), max_upload_bytes=len(png_bytes) - 1)

    with pytest.raises(ValidationError, match="max size"):
        controller.select_image("a.png", png_bytes, "image/png", "picker")
    assert controller.source is None
