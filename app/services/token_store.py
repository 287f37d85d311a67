# file: services/token_store.py

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from fastapi import Request
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.database.models import PushToken
from app.models.notification import Registration

logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    return f"{token[:15]}..."


class TokenStore(Protocol):
    """One push token per user; the latest registration wins."""

    async def register(self, user_id: str, token: str) -> None: ...

    async def get(self, user_id: str) -> Optional[Registration]: ...

    async def lookup(self, user_id: str) -> Optional[str]: ...

    async def remove(self, user_id: str) -> None: ...

    async def count(self) -> int: ...


class InMemoryTokenStore:
    """Process-local store. Lost on restart, not shared between instances."""

    def __init__(self):
        self._registrations: Dict[str, Registration] = {}
        self._lock = threading.Lock()

    async def register(self, user_id: str, token: str) -> None:
        registration = Registration(user_id=user_id, token=token, created_at=datetime.now(timezone.utc))
        with self._lock:
            self._registrations[user_id] = registration

    async def get(self, user_id: str) -> Optional[Registration]:
        with self._lock:
            return self._registrations.get(user_id)

    async def lookup(self, user_id: str) -> Optional[str]:
        registration = await self.get(user_id)
        return registration.token if registration else None

    async def remove(self, user_id: str) -> None:
        with self._lock:
            self._registrations.pop(user_id, None)

    async def count(self) -> int:
        with self._lock:
            return len(self._registrations)


class SqlTokenStore:
    """Registrations kept in the `push_tokens` table so they survive restarts."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def register(self, user_id: str, token: str) -> None:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            row = await session.get(PushToken, user_id)
            if row:
                row.token = token
                row.created_at = now
                await session.commit()
                return

            session.add(PushToken(user_id=user_id, token=token, created_at=now))
            try:
                await session.commit()
            except IntegrityError:
                # Another request inserted the same user first; overwrite it.
                await session.rollback()
                row = await session.get(PushToken, user_id)
                row.token = token
                row.created_at = now
                await session.commit()

    async def get(self, user_id: str) -> Optional[Registration]:
        async with self._session_factory() as session:
            row = await session.get(PushToken, user_id)
            return Registration.model_validate(row) if row else None

    async def lookup(self, user_id: str) -> Optional[str]:
        async with self._session_factory() as session:
            result = await session.execute(select(PushToken.token).where(PushToken.user_id == user_id))
            return result.scalar_one_or_none()

    async def remove(self, user_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(PushToken).where(PushToken.user_id == user_id))
            await session.commit()

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(PushToken))
            return result.scalar_one()


def build_token_store(settings: Settings) -> TokenStore:
    if settings.token_store_backend == "database":
        from app.database.connection import AsyncSessionLocal
        logger.info("Using database-backed token store")
        return SqlTokenStore(AsyncSessionLocal)

    logger.info("Using in-memory token store")
    return InMemoryTokenStore()


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store
