# file: controllers/media.py

from datetime import datetime, timezone
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.config import Settings, get_settings
from app.models.media import Song
from app.services.media_service import (
    fetch_playlist_songs,
    fetch_video,
    download_instagram_video,
    validate_media_url,
)

router = APIRouter()


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport for third-party calls; None means httpx's default."""
    return None


def _video_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="video/mp4",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/spotify", response_model=List[Song])
async def get_songs(
        settings: Settings = Depends(get_settings),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    return await fetch_playlist_songs(settings, transport)


@router.get("/proxy")
async def proxy_video(
        url: str = Query(..., min_length=1),
        settings: Settings = Depends(get_settings),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    content = await fetch_video(validate_media_url(url), settings, transport)
    return _video_response(content, "video.mp4")


@router.get("/instagram")
async def instagram_video(
        url: str = Query(..., min_length=1),
        settings: Settings = Depends(get_settings),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    content = await download_instagram_video(validate_media_url(url), settings, transport)
    return _video_response(content, "instagram_video.mp4")


@router.get("/test")
async def status_check():
    return {
        "message": "Universal Video Downloader API is working!",
        "status": "active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "features": [
            "Supports Instagram video pages",
            "Supports direct video links (.mp4, .webm, .ogg)",
            "CORS enabled",
        ],
    }
