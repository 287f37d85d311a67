# file: app/config.py

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

TOKEN_STORE_BACKENDS = ("memory", "database")


@dataclass(frozen=True)
class Settings:
    app_url: str = "https://jibzo.vercel.app"
    token_store_backend: str = "memory"
    database_url: str = "sqlite+aiosqlite:///./jibzo.db"

    firebase_service_account: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_private_key: Optional[str] = None
    firebase_credentials_file: str = "serviceAccountKey.json"

    push_timeout_seconds: float = 5.0
    http_timeout_seconds: float = 10.0

    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587

    music_client_id: Optional[str] = None
    music_client_secret: Optional[str] = None
    spotify_playlist_id: str = "37i9dQZF1DX4WYpdgoIcn6"

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Reads every setting from the process environment (and .env)."""
        backend = os.getenv("TOKEN_STORE_BACKEND", cls.token_store_backend).strip().lower()
        if backend not in TOKEN_STORE_BACKENDS:
            raise ValueError(
                f"TOKEN_STORE_BACKEND must be one of: {', '.join(TOKEN_STORE_BACKENDS)}"
            )

        return cls(
            app_url=os.getenv("APP_URL", cls.app_url).rstrip("/"),
            token_store_backend=backend,
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            firebase_service_account=os.getenv("FIREBASE_SERVICE_ACCOUNT"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
            firebase_client_email=os.getenv("FIREBASE_CLIENT_EMAIL"),
            firebase_private_key=os.getenv("FIREBASE_PRIVATE_KEY"),
            firebase_credentials_file=os.getenv("FIREBASE_CREDENTIALS_FILE", cls.firebase_credentials_file),
            push_timeout_seconds=float(os.getenv("PUSH_TIMEOUT_SECONDS", cls.push_timeout_seconds)),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", cls.http_timeout_seconds)),
            email_user=os.getenv("EMAIL_USER"),
            email_pass=os.getenv("EMAIL_PASS"),
            smtp_host=os.getenv("SMTP_HOST", cls.smtp_host),
            smtp_port=int(os.getenv("SMTP_PORT", cls.smtp_port)),
            music_client_id=os.getenv("MUSIC_CLIENT_ID"),
            music_client_secret=os.getenv("MUSIC_CLIENT_SECRET"),
            spotify_playlist_id=os.getenv("SPOTIFY_PLAYLIST_ID", cls.spotify_playlist_id),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
