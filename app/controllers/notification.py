# file: controllers/notification.py

from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.models.notification import TokenRegistrationRequest, NotificationRequest, PushRequest
from app.services.dispatch import FcmDispatchClient, get_dispatch_client
from app.services.notifications import register_token, send_chat_notification, send_direct_push
from app.services.token_store import TokenStore, get_token_store

router = APIRouter()


@router.post("/save-token")
@router.post("/saveToken", include_in_schema=False)
async def save_token(
        request: TokenRegistrationRequest,
        store: TokenStore = Depends(get_token_store),
):
    """
    Records the caller's current push token, replacing any earlier one.
    """
    tokens_count = await register_token(store, request.userId, request.token)
    return {"success": True, "message": "Token saved successfully", "tokensCount": tokens_count}


@router.post("/send-notification")
async def send_notification(
        request: NotificationRequest,
        store: TokenStore = Depends(get_token_store),
        dispatcher: FcmDispatchClient = Depends(get_dispatch_client),
        settings: Settings = Depends(get_settings),
):
    """
    Delivers a chat notification to a user who registered a push token.
    """
    message_id = await send_chat_notification(request, store, dispatcher, settings.app_url)
    return {"success": True, "message": "Notification sent successfully", "messageId": message_id}


@router.post("/sendPush")
async def send_push(
        request: PushRequest,
        dispatcher: FcmDispatchClient = Depends(get_dispatch_client),
        settings: Settings = Depends(get_settings),
):
    message_id = await send_direct_push(request, dispatcher, settings.app_url)
    return {"success": True, "messageId": message_id}
