from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


# Base class for all models
class Base(DeclarativeBase):
    pass


class PushToken(Base):
    __tablename__ = "push_tokens"
    user_id = Column(String(128), primary_key=True)
    token = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
