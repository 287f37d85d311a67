# file: services/media_service.py

import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from app.config import Settings
from app.models.media import Song
from app.utils.errors import BadRequest, ProviderError

logger = logging.getLogger(__name__)

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_URL = "https://api.spotify.com/v1"

INSTAGRAM_VIDEO_PATTERNS = [
    re.compile(r'"video_url":"([^"]+)"'),
    re.compile(r'"contentUrl":"([^"]+)"'),
    re.compile(r'<meta property="og:video" content="([^"]+)"'),
]


def validate_media_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise BadRequest("url must be an absolute http(s) URL")
    return url


def _song_from_track(song_id: int, track: dict) -> Song:
    images = (track.get("album") or {}).get("images") or []
    artists = [artist.get("name", "") for artist in track.get("artists") or [] if artist]
    return Song(
        id=song_id,
        name=track.get("name") or "",
        artist=", ".join(name for name in artists if name),
        preview_url=track.get("preview_url"),
        image=images[0].get("url", "") if images else "",
    )


async def fetch_playlist_songs(
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Song]:
    """Client-credentials token exchange, then one playlist tracks request."""
    if not settings.music_client_id or not settings.music_client_secret:
        logger.error("MUSIC_CLIENT_ID / MUSIC_CLIENT_SECRET not set")
        raise ProviderError("Failed to fetch songs")

    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds, transport=transport) as client:
            token_response = await client.post(
                SPOTIFY_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(settings.music_client_id, settings.music_client_secret),
            )
            token_response.raise_for_status()
            access_token = token_response.json()["access_token"]

            playlist_response = await client.get(
                f"{SPOTIFY_API_URL}/playlists/{settings.spotify_playlist_id}/tracks",
                headers={"Authorization": f"Bearer {access_token}"},
            )
            playlist_response.raise_for_status()

            songs = []
            for item in playlist_response.json().get("items") or []:
                track = item.get("track")
                if not track:
                    continue
                songs.append(_song_from_track(len(songs) + 1, track))
    except (httpx.HTTPError, KeyError, ValueError, AttributeError, TypeError) as e:
        logger.error(f"Spotify API error: {e}")
        raise ProviderError("Failed to fetch songs")

    return songs


async def fetch_video(
        url: str,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    try:
        async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds, transport=transport, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch video from {url}: {e}")
        raise ProviderError("Failed to fetch video")


def extract_instagram_video_url(page: str) -> Optional[str]:
    for pattern in INSTAGRAM_VIDEO_PATTERNS:
        match = pattern.search(page)
        if match:
            return match.group(1).replace("\\u0026", "&")
    return None


async def download_instagram_video(
        url: str,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    try:
        async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds, transport=transport, follow_redirects=True
        ) as client:
            page = await client.get(url)
            page.raise_for_status()

            video_url = extract_instagram_video_url(page.text)
            if not video_url:
                logger.warning(f"Instagram download failed for {url}: no video URL in page")
                raise ProviderError("Failed to download video")

            video = await client.get(video_url)
            video.raise_for_status()
            return video.content
    except httpx.HTTPError as e:
        logger.error(f"Instagram download failed for {url}: {e}")
        raise ProviderError("Failed to download video")
