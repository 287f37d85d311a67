# file: models/notification.py

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from datetime import datetime
from typing import Optional


class Registration(BaseModel):
    user_id: str
    token: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class TokenRegistrationRequest(BaseModel):
    # Older clients post `fcmToken` instead of `token`.
    userId: str = Field(min_length=1, max_length=128)
    token: str = Field(min_length=1, validation_alias=AliasChoices("token", "fcmToken"))

    @field_validator('userId', 'token')
    def strip_value(cls, v):
        if not v.strip():
            raise ValueError('Value cannot be blank')
        return v.strip()


class NotificationRequest(BaseModel):
    recipientId: str = Field(min_length=1)
    message: str = Field(min_length=1)
    senderId: Optional[str] = None
    chatId: Optional[str] = None
    senderName: Optional[str] = None
    imageUrl: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator('recipientId', 'message')
    def validate_required(cls, v):
        if not v.strip():
            raise ValueError('Value cannot be blank')
        return v


class PushRequest(BaseModel):
    token: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    body: str = Field(min_length=1, max_length=500)

    model_config = ConfigDict(frozen=True)
