from pydantic import BaseModel
from typing import Optional


class Song(BaseModel):
    id: int
    name: str
    artist: str
    preview_url: Optional[str] = None
    image: str = ""
