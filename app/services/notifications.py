# file: services/notifications.py

import logging

from app.models.notification import NotificationRequest, PushRequest
from app.services.dispatch import DispatchResult, FailureKind, FcmDispatchClient
from app.services.message_formatter import format_chat_notification, format_direct_push
from app.services.token_store import TokenStore, mask_token
from app.utils.errors import BadRequest, NotFound, ProviderError

logger = logging.getLogger(__name__)


def _raise_for_failure(result: DispatchResult) -> None:
    if result.kind == FailureKind.VALIDATION_ERROR:
        raise BadRequest(f"Invalid notification payload: {result.detail}")
    raise ProviderError(f"Error sending notification: {result.detail}")


async def register_token(store: TokenStore, user_id: str, token: str) -> int:
    await store.register(user_id, token)
    logger.info(f"Token saved for user {user_id}: {mask_token(token)}")
    return await store.count()


async def send_chat_notification(
        request: NotificationRequest,
        store: TokenStore,
        dispatcher: FcmDispatchClient,
        app_url: str,
) -> str:
    """
    Looks up the recipient's token, formats and sends the message, and returns
    the provider message id. A token the provider reports as dead is evicted
    and the request still fails with 404.
    """
    token = await store.lookup(request.recipientId)
    if token is None:
        logger.info(f"Token not found for user: {request.recipientId}")
        raise NotFound("Recipient token not found. User might not have enabled notifications.")

    message = format_chat_notification(request, token, app_url)
    result = await dispatcher.send(message)

    if result.success:
        logger.info(f"Notification sent to {request.recipientId}: {result.message_id}")
        return result.message_id

    if result.kind == FailureKind.INVALID_RECIPIENT_TOKEN:
        await store.remove(request.recipientId)
        logger.info(f"Removed invalid token for user: {request.recipientId}")
        raise NotFound("Recipient token expired. User must enable notifications again.")

    _raise_for_failure(result)


async def send_direct_push(push: PushRequest, dispatcher: FcmDispatchClient, app_url: str) -> str:
    result = await dispatcher.send(format_direct_push(push, app_url))
    if result.success:
        return result.message_id

    if result.kind == FailureKind.INVALID_RECIPIENT_TOKEN:
        raise NotFound("Device token is no longer registered.")

    _raise_for_failure(result)
