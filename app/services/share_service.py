# app/services/share_service.py
"""
Share service: hands a rendered pass card to a messaging gateway so the
visitor receives it directly.

POST {SHARE_WEBHOOK_URL}  multipart: file=<png>, recipient, title, text
If no gateway is configured, or it fails, the caller falls back to
returning the PNG as a download.
"""

import httpx
from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


class ShareUnavailableError(Exception):
    """No share channel could take the image: fall back to download."""


def can_share() -> bool:
    return bool(settings.SHARE_WEBHOOK_URL)


async def share_pass_image(png: bytes, filename: str, visitor_name: str, recipient: str) -> None:
    if not can_share():
        raise ShareUnavailableError("No share gateway configured")

    data = {
        "recipient": recipient,
        "title": f"Visitor Pass for {visitor_name}",
        "text": f"Here is the visitor pass for {visitor_name}.",
    }
    files = {"file": (filename, png, "image/png")}
    try:
        async with httpx.AsyncClient(timeout=settings.SHARE_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.SHARE_WEBHOOK_URL, data=data, files=files)
    except httpx.HTTPError as e:
        logger.error(f"[SHARE] Gateway unreachable for {filename}: {e}")
        raise ShareUnavailableError(str(e)) from e

    if response.status_code >= 300:
        logger.warning(f"[SHARE] Gateway returned HTTP {response.status_code} for {filename}")
        raise ShareUnavailableError(f"Gateway returned HTTP {response.status_code}")
    logger.info(f"[SHARE] Sent {filename} ({len(png)} bytes) to {recipient}")
