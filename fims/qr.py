# fims/qr.py
from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional, Protocol

import httpx
import qrcode
from PIL import Image, UnidentifiedImageError

from fims.config import DEFAULT_QR_ENDPOINT

logger = logging.getLogger(__name__)


class QrCodeProvider(Protocol):
    async def fetch(self, url: str) -> Optional[bytes]:
        """Return PNG bytes encoding `url`, or None when unavailable."""
        ...


def _checked_image(data: bytes) -> Optional[bytes]:
    """Return `data` if Pillow can decode it as an image, else None."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.warning("QR image could not be decoded: %s", e)
        return None
    return data


def encode_qr_png(url: str, *, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(url)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class LocalQrProvider:
    """Encodes the QR with the `qrcode` library on a worker thread."""

    async def fetch(self, url: str) -> Optional[bytes]:
        return await asyncio.to_thread(encode_qr_png, url)


class RemoteQrProvider:
    """Fetches a QR PNG from an HTTP image endpoint (qrserver.com compatible)."""

    def __init__(
        self,
        endpoint: str = DEFAULT_QR_ENDPOINT,
        *,
        timeout: float = 5.0,
        size: int = 256,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._endpoint = endpoint
        self._timeout = timeout
        self._size = size
        self._transport = transport

    async def fetch(self, url: str) -> Optional[bytes]:
        params = {"size": f"{self._size}x{self._size}", "margin": "10", "data": url}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(self._endpoint, params=params)
        except httpx.HTTPError as e:
            logger.warning("QR endpoint request failed: %s", e)
            return None

        if not resp.is_success:
            logger.warning("QR endpoint returned HTTP %s", resp.status_code)
            return None
        return resp.content


async def acquire_qr(provider: QrCodeProvider, url: str, timeout: float) -> Optional[bytes]:
    """
    Bounded, never-raising QR acquisition. Any failure (timeout, provider
    error, undecodable bytes) yields None so the caller can print a fallback.
    """
    try:
        data = await asyncio.wait_for(provider.fetch(url), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("QR acquisition timed out after %.1fs", timeout)
        return None
    except Exception as e:
        logger.warning("QR acquisition failed: %s", e, exc_info=True)
        return None

    if not data:
        return None
    return _checked_image(data)
