import asyncio
import io

import pytest
from PIL import Image

from watermark_nuker.core.errors import RemoteCallError


def make_png(size=(4, 3)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 10, 10)).save(buf, format="PNG")
    return buf.getvalue()


class FakeEditClient:
    """Records calls and answers with a fixed result or error."""

    def __init__(self, result="Zm9v", error=None):
        self.result = result
        self.error = error
        self.calls = []
        self.gate = None
        self.started = None

    async def aedit_image(self, payload, directive):
        self.calls.append((payload, directive))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FakeResponse:
    def __init__(self, payload=None, status_code=200, exc=None):
        self.payload = payload
        self.status_code = status_code
        self.exc = exc

    def raise_for_status(self):
        if self.exc is not None:
            raise self.exc

    def json(self):
        return self.payload


class FakeSession:
    """Stand-in for `requests.Session` capturing the last request."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def fake_client():
    return FakeEditClient()


@pytest.fixture
def failing_client():
    return FakeEditClient(error=RemoteCallError("boom"))


@pytest.fixture
def run():
    return asyncio.run
