"""
Resolves image keywords into concrete image URLs through the Unsplash API.
"""

import asyncio
import logging
from typing import List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from config import Settings
from errors import UpstreamFetchFailure

logger = logging.getLogger(__name__)

UNSPLASH_RANDOM_PHOTO_URL = "https://api.unsplash.com/photos/random"
# Public endpoint used without an access key; rate limited and unreliable.
UNSPLASH_PUBLIC_SOURCE_URL = "https://source.unsplash.com/1600x900/?{query}"


def public_source_url(keyword: str) -> str:
    return UNSPLASH_PUBLIC_SOURCE_URL.format(query=quote(keyword.strip(), safe=""))


async def _fetch_random_photo_url(keyword: str, session: aiohttp.ClientSession, settings: Settings) -> str:
    params = {"query": keyword.strip(), "orientation": "landscape", "count": "1"}
    headers = {"Authorization": f"Client-ID {settings.unsplash_access_key}"}
    timeout = aiohttp.ClientTimeout(total=settings.image_timeout_seconds)

    try:
        async with session.get(UNSPLASH_RANDOM_PHOTO_URL, params=params, headers=headers, timeout=timeout) as response:
            if response.status != 200:
                raise UpstreamFetchFailure(f"Unsplash API failed with status {response.status} for keyword: {keyword}")
            data = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise UpstreamFetchFailure(f"Error fetching image from Unsplash API: {e}") from e

    # count=1 returns a list; without it the API returns a single photo.
    photo = data[0] if isinstance(data, list) and data else data
    if not isinstance(photo, dict):
        return ""
    urls = photo.get("urls")
    if not isinstance(urls, dict):
        return ""
    return urls.get("regular") or ""


async def resolve_image(keyword: str, session: aiohttp.ClientSession, settings: Settings) -> str:
    """
    Returns a fetchable image URL for the keyword, or '' for no image.

    Never raises: an API failure degrades to ''.
    """
    if not keyword or not keyword.strip():
        return ""

    if not settings.unsplash_access_key:
        return public_source_url(keyword)

    try:
        return await _fetch_random_photo_url(keyword, session, settings)
    except UpstreamFetchFailure as e:
        logger.error(str(e))
        return ""


async def resolve_images(
    keywords: Sequence[str],
    settings: Settings,
    session: Optional[aiohttp.ClientSession] = None,
) -> List[str]:
    """Resolves all keywords concurrently; results keep the input order."""
    if not settings.unsplash_access_key and any(k for k in keywords):
        logger.warning(
            "UNSPLASH_ACCESS_KEY not found. Images may fail to load due to rate limiting on the public endpoint."
        )

    semaphore = asyncio.Semaphore(settings.max_concurrent_fetches)

    async def resolve_with_semaphore(keyword: str, client: aiohttp.ClientSession) -> str:
        async with semaphore:
            return await resolve_image(keyword, client, settings)

    if session is not None:
        return list(await asyncio.gather(*[resolve_with_semaphore(k, session) for k in keywords]))

    async with aiohttp.ClientSession() as own_session:
        return list(await asyncio.gather(*[resolve_with_semaphore(k, own_session) for k in keywords]))
