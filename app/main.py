import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from .settings import settings
from .db import init_db
from .providers.registry import close_providers
from .routers import payments, provider_webhooks, admin

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    close_providers()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(payments.router, tags=["Payments"])
app.include_router(provider_webhooks.router, tags=["Provider Webhooks"])
app.include_router(admin.router, tags=["Admin"])

@app.get("/health", tags=["Ops"])
async def health():
    return {"status": "ok"}
