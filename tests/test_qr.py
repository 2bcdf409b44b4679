import asyncio
import io
import time

import httpx
import pytest
from PIL import Image

from fims import qr as qr_module
from fims.qr import LocalQrProvider, RemoteQrProvider, acquire_qr, encode_qr_png


VERIFY_URL = "https://fims.example.org/verify-certificate/CCSA-2025-ABC123"


def test_encode_qr_png_produces_a_png():
    data = encode_qr_png(VERIFY_URL)

    assert data.startswith(b"\x89PNG")
    with Image.open(io.BytesIO(data)) as img:
        assert img.size[0] == img.size[1]


@pytest.mark.asyncio
async def test_local_provider_encodes_without_network():
    data = await LocalQrProvider().fetch(VERIFY_URL)

    assert await acquire_qr(LocalQrProvider(), VERIFY_URL, timeout=2.0) == data


@pytest.mark.asyncio
async def test_remote_provider_requests_qr_for_the_url():
    png = encode_qr_png("stub")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, content=png, headers={"content-type": "image/png"})

    provider = RemoteQrProvider("https://qr.example/create", transport=httpx.MockTransport(handler))

    assert await provider.fetch(VERIFY_URL) == png
    assert seen["params"] == {"size": "256x256", "margin": "10", "data": VERIFY_URL}


@pytest.mark.asyncio
async def test_remote_provider_accepts_any_2xx():
    png = encode_qr_png("stub")
    provider = RemoteQrProvider(
        "https://qr.example/create",
        transport=httpx.MockTransport(lambda request: httpx.Response(201, content=png)),
    )

    assert await provider.fetch(VERIFY_URL) == png


@pytest.mark.asyncio
async def test_remote_provider_non_2xx_is_unavailable():
    provider = RemoteQrProvider(
        "https://qr.example/create",
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="busy")),
    )

    assert await provider.fetch(VERIFY_URL) is None


@pytest.mark.asyncio
async def test_remote_provider_network_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = RemoteQrProvider("https://qr.example/create", transport=httpx.MockTransport(handler))

    assert await provider.fetch(VERIFY_URL) is None


@pytest.mark.asyncio
async def test_acquire_rejects_bytes_that_are_not_an_image():
    provider = RemoteQrProvider(
        "https://qr.example/create",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>oops</html>")),
    )

    assert await acquire_qr(provider, VERIFY_URL, timeout=2.0) is None


@pytest.mark.asyncio
async def test_acquire_times_out():
    class Hanging:
        async def fetch(self, url):
            await asyncio.sleep(10)

    assert await acquire_qr(Hanging(), VERIFY_URL, timeout=0.05) is None


@pytest.mark.asyncio
async def test_acquire_swallows_provider_errors():
    class Broken:
        async def fetch(self, url):
            raise RuntimeError("boom")

    assert await acquire_qr(Broken(), VERIFY_URL, timeout=1.0) is None


@pytest.mark.asyncio
async def test_acquire_treats_empty_payload_as_unavailable():
    class Empty:
        async def fetch(self, url):
            return b""

    assert await acquire_qr(Empty(), VERIFY_URL, timeout=1.0) is None


@pytest.mark.asyncio
async def test_slow_local_encoding_does_not_block_the_timeout(monkeypatch):
    def slow_encode(url):
        time.sleep(0.5)
        return b"late"

    monkeypatch.setattr(qr_module, "encode_qr_png", slow_encode)

    started = time.monotonic()
    result = await acquire_qr(LocalQrProvider(), VERIFY_URL, timeout=0.05)

    assert result is None
    assert time.monotonic() - started < 0.4
