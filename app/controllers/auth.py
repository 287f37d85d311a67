from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
import firebase_admin

from app.config import Settings, get_settings
from app.models.user import ResetPasswordRequest, OtpEmailRequest
from app.services.account import reset_password
from app.services.firebase_app import get_firebase_app
from app.services.mailer import send_otp_email

router = APIRouter()


@router.post("/reset-password")
async def reset_user_password(
    request: ResetPasswordRequest,
    firebase_app: firebase_admin.App = Depends(get_firebase_app)
):
    await run_in_threadpool(reset_password, request.email, request.newPassword, firebase_app)
    return {"success": True, "message": "Password updated!"}


@router.post("/sendemail")
async def send_otp(
    request: OtpEmailRequest,
    settings: Settings = Depends(get_settings)
):
    await run_in_threadpool(send_otp_email, settings, request.email, request.otp, request.username)
    return {"success": True, "message": "OTP sent successfully!"}
