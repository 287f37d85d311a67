# file: services/dispatch.py

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import firebase_admin
from fastapi import Depends
from firebase_admin import exceptions, messaging

from app.config import Settings, get_settings
from app.services.firebase_app import get_firebase_app
from app.utils.errors import ProviderError

logger = logging.getLogger(__name__)


class FailureKind(str, enum.Enum):
    INVALID_RECIPIENT_TOKEN = "invalid_recipient_token"
    TRANSIENT_PROVIDER_ERROR = "transient_provider_error"
    VALIDATION_ERROR = "validation_error"


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    message_id: Optional[str] = None
    kind: Optional[FailureKind] = None
    detail: str = ""

    @classmethod
    def ok(cls, message_id: str) -> "DispatchResult":
        return cls(success=True, message_id=message_id)

    @classmethod
    def failure(cls, kind: FailureKind, detail: str) -> "DispatchResult":
        return cls(success=False, kind=kind, detail=detail)


def classify_error(error: Exception) -> FailureKind:
    """Maps the SDK's exception zoo onto the three failure kinds callers act on."""
    if isinstance(error, (messaging.UnregisteredError, messaging.SenderIdMismatchError, exceptions.NotFoundError)):
        return FailureKind.INVALID_RECIPIENT_TOKEN
    if isinstance(error, exceptions.InvalidArgumentError):
        return FailureKind.VALIDATION_ERROR
    # The SDK encodes the payload before opening a connection and raises these on bad input.
    if isinstance(error, (ValueError, TypeError)) and not isinstance(error, exceptions.FirebaseError):
        return FailureKind.VALIDATION_ERROR
    return FailureKind.TRANSIENT_PROVIDER_ERROR


class FcmDispatchClient:
    """Sends one FCM message per call. No retries."""

    def __init__(
            self,
            firebase_app: Optional[firebase_admin.App] = None,
            timeout: float = 5.0,
            app_provider: Optional[Callable[[], firebase_admin.App]] = None,
    ):
        self._firebase_app = firebase_app
        self._app_provider = app_provider
        self._timeout = timeout

    def _resolve_app(self) -> Optional[firebase_admin.App]:
        # Firebase is only initialised once a message is actually ready to go out
        if self._firebase_app is None and self._app_provider is not None:
            self._firebase_app = self._app_provider()
        return self._firebase_app

    async def send(self, message: messaging.Message) -> DispatchResult:
        try:
            firebase_app = self._resolve_app()
        except ProviderError as e:
            logger.error(f"FCM unavailable: {e.detail}")
            return DispatchResult.failure(FailureKind.TRANSIENT_PROVIDER_ERROR, e.detail)

        try:
            message_id = await asyncio.wait_for(
                asyncio.to_thread(messaging.send, message, app=firebase_app),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"FCM send timed out after {self._timeout}s")
            return DispatchResult.failure(
                FailureKind.TRANSIENT_PROVIDER_ERROR, f"Push provider timed out after {self._timeout}s"
            )
        except Exception as e:
            kind = classify_error(e)
            code = getattr(e, "code", None)
            logger.warning(f"FCM send failed ({kind.value}, code={code}): {e}")
            return DispatchResult.failure(kind, str(e))

        logger.info(f"FCM message sent: {message_id}")
        return DispatchResult.ok(message_id)


def get_dispatch_client(settings: Settings = Depends(get_settings)) -> FcmDispatchClient:
    return FcmDispatchClient(
        timeout=settings.push_timeout_seconds,
        app_provider=lambda: get_firebase_app(settings),
    )
