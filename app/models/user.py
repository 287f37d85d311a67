from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    newPassword: str

    @field_validator('newPassword')
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return v


class OtpEmailRequest(BaseModel):
    email: EmailStr
    otp: str
    username: Optional[str] = None

    @field_validator('otp')
    def validate_otp(cls, v):
        if not v.strip():
            raise ValueError('OTP cannot be empty')
        return v.strip()
