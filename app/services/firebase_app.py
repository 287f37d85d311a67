# file: services/firebase_app.py

import json
import logging
import threading

import firebase_admin
from firebase_admin import credentials
from fastapi import Depends

from app.config import Settings, get_settings
from app.utils.errors import ProviderError

logger = logging.getLogger(__name__)

REQUIRED_ACCOUNT_FIELDS = ("project_id", "private_key", "client_email")

_init_lock = threading.Lock()


def _fix_private_key(key: str) -> str:
    return key.replace("\\n", "\n")


def load_credentials(settings: Settings) -> credentials.Certificate:
    """
    Resolves the service account: a JSON blob first, then the split
    FIREBASE_* variables, then the credentials file on disk.
    """
    if settings.firebase_service_account:
        try:
            account = json.loads(settings.firebase_service_account)
        except json.JSONDecodeError:
            raise ValueError("Invalid FIREBASE_SERVICE_ACCOUNT JSON format")

        for field in REQUIRED_ACCOUNT_FIELDS:
            if not account.get(field):
                raise ValueError(f"Service account missing required field: {field}")
        account["private_key"] = _fix_private_key(account["private_key"])
        return credentials.Certificate(account)

    if settings.firebase_project_id and settings.firebase_client_email and settings.firebase_private_key:
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            "private_key": _fix_private_key(settings.firebase_private_key),
            "token_uri": "https://oauth2.googleapis.com/token",
        })

    return credentials.Certificate(settings.firebase_credentials_file)


def get_firebase_app(settings: Settings = Depends(get_settings)) -> firebase_admin.App:
    # Singleton pattern: initialise the default app on first use only
    if firebase_admin._apps:
        return firebase_admin.get_app()

    with _init_lock:
        if firebase_admin._apps:
            return firebase_admin.get_app()
        try:
            app = firebase_admin.initialize_app(
                load_credentials(settings),
                options={"httpTimeout": settings.push_timeout_seconds},
            )
        except (ValueError, OSError) as e:
            logger.error(f"Error initializing Firebase Admin SDK: {e}")
            raise ProviderError("Firebase is not configured")
        logger.info("Firebase Admin SDK initialized successfully.")
        return app
