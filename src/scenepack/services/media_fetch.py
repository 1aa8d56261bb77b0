"""Helpers for reading media resources that may be data URLs or remote URLs."""

import base64
import logging

import httpx

from scenepack.utils.errors import TransientIOFailure

logger = logging.getLogger(__name__)


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def split_data_url(url: str) -> tuple[str, bytes]:
    """Decode a ``data:<mime>;base64,<payload>`` URL into (mime type, bytes)."""
    header, _, b64_data = url.partition(",")
    mime_type = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    return mime_type, base64.b64decode(b64_data)


async def fetch_media_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    """Read the bytes behind a media URL.

    Data URLs are decoded locally; anything else is downloaded.

    Raises:
        TransientIOFailure: If the download fails or the URL is empty
    """
    if not url:
        raise TransientIOFailure("No media URL to fetch")

    if is_data_url(url):
        try:
            return split_data_url(url)[1]
        except ValueError as e:
            raise TransientIOFailure(f"Invalid data URL: {e}") from e

    try:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        return response.content
    except httpx.HTTPError as e:
        logger.warning(f"Failed to download media from {url[:80]}: {e}")
        raise TransientIOFailure(f"Media download failed: {e}") from e
