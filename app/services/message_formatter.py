# file: services/message_formatter.py

from datetime import datetime, timezone

from firebase_admin import messaging

from app.models.notification import NotificationRequest, PushRequest

BODY_PREVIEW_LENGTH = 50
ELLIPSIS = "..."

ICON_PATH = "/logo.png"
CLICK_ACTION = "OPEN_CHAT"
ANDROID_CHANNEL_ID = "messages_channel"
ANDROID_ICON = "ic_notification"
VIBRATE_PATTERN = [200, 100, 200]


def truncate_body(text: str, limit: int = BODY_PREVIEW_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _chat_title(request: NotificationRequest) -> str:
    if request.title:
        return request.title
    return f"💬 {request.senderName or 'Someone'}"


def _webpush_config(link: str, icon: str) -> messaging.WebpushConfig:
    return messaging.WebpushConfig(
        headers={"Urgency": "high"},
        notification=messaging.WebpushNotification(
            icon=icon,
            badge=icon,
            require_interaction=False,
            vibrate=VIBRATE_PATTERN,
            actions=[messaging.WebpushNotificationAction(action="open", title="💬 Open Chat")],
        ),
        fcm_options=messaging.WebpushFCMOptions(link=link),
    )


def _android_config() -> messaging.AndroidConfig:
    return messaging.AndroidConfig(
        priority="high",
        notification=messaging.AndroidNotification(
            sound="default",
            channel_id=ANDROID_CHANNEL_ID,
            icon=ANDROID_ICON,
            click_action=CLICK_ACTION,
        ),
    )


def _apns_config() -> messaging.APNSConfig:
    return messaging.APNSConfig(
        payload=messaging.APNSPayload(
            aps=messaging.Aps(sound="default", badge=1, mutable_content=True)
        )
    )


def format_chat_notification(request: NotificationRequest, token: str, app_url: str) -> messaging.Message:
    """
    Builds the FCM message for a new chat message.

    The notification body is a display preview only: the full text travels in
    `data.message`. All data values are strings, as FCM requires.
    """
    display_text = request.body or request.message
    icon = f"{app_url}{ICON_PATH}"

    return messaging.Message(
        token=token,
        notification=messaging.Notification(
            title=_chat_title(request),
            body=truncate_body(display_text),
            image=request.imageUrl or icon,
        ),
        data={
            "type": "new_message",
            "senderId": request.senderId or "",
            "chatId": request.chatId or "",
            "recipientId": request.recipientId,
            "message": request.message,
            "senderName": request.senderName or "Someone",
            "imageUrl": request.imageUrl or "",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "click_action": CLICK_ACTION,
        },
        webpush=_webpush_config(f"{app_url}/messages/{request.senderId or ''}", icon),
        android=_android_config(),
        apns=_apns_config(),
    )


def format_direct_push(push: PushRequest, app_url: str) -> messaging.Message:
    return messaging.Message(
        token=push.token.strip(),
        notification=messaging.Notification(title=push.title, body=push.body),
        data={
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "deep_link": app_url,
        },
        webpush=_webpush_config(app_url, f"{app_url}{ICON_PATH}"),
        android=_android_config(),
        apns=_apns_config(),
    )
