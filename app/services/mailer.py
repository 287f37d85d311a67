# file: services/mailer.py

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from app.config import Settings
from app.utils.errors import ProviderError

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your OTP Code"
SENDER_NAME = "Jibzo"


def render_otp_email(username: Optional[str], otp: str) -> str:
    return (
        f"<h3>Hello {html.escape(username or 'User')},</h3>"
        f"<p>Your OTP is: <b>{html.escape(otp)}</b></p>"
        "<p>It expires in 10 minutes.</p>"
    )


def send_otp_email(settings: Settings, to_email: str, otp: str, username: Optional[str] = None) -> None:
    """Blocking SMTP send; call from a worker thread."""
    if not settings.email_user or not settings.email_pass:
        logger.error("EMAIL_USER / EMAIL_PASS not set, OTP email not sent")
        raise ProviderError("Failed to send OTP.")

    msg = MIMEMultipart("alternative")
    msg["Subject"] = OTP_SUBJECT
    msg["From"] = f"{SENDER_NAME} <{settings.email_user}>"
    msg["To"] = to_email
    msg.attach(MIMEText(f"Your OTP is: {otp}\nIt expires in 10 minutes.", "plain"))
    msg.attach(MIMEText(render_otp_email(username, otp), "html"))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.http_timeout_seconds) as server:
            server.starttls()
            server.login(settings.email_user, settings.email_pass)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP error sending OTP to {to_email}: {e}")
        raise ProviderError("Failed to send OTP.")

    logger.info(f"OTP email sent to {to_email}")
