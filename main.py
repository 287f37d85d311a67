# file: main.py

import logging

from fastapi import FastAPI

from app.config import get_settings
from app.controllers.auth import router as auth_router
from app.controllers.media import router as media_router
from app.controllers.notification import router as notification_router
from app.database.connection import init_db
from app.services.token_store import build_token_store
from app.utils.http import install_http_adapter

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="Jibzo API")

install_http_adapter(app)

app.state.token_store = build_token_store(settings)

app.include_router(notification_router, prefix="/api", tags=["notifications"])
app.include_router(auth_router, prefix="/api", tags=["auth"])
app.include_router(media_router, prefix="/api", tags=["media"])


@app.get("/")
async def root():
    return {"message": "Jibzo API is running"}


@app.on_event("startup")
async def startup_event():
    if settings.token_store_backend == "database":
        await init_db()
