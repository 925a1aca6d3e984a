# storefront/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import get_settings
from storefront.core.logging import setup_logging
from storefront.core.security import ensure_secure_settings
from storefront.db.session import close_engines
from storefront.http_problem_handlers import register_exception_handlers
from storefront.obs.metrics import PrometheusMiddleware
from storefront.router_mount import mount_routers
from storefront.services.shipping import close_providers

settings = get_settings()
setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
logger = logging.getLogger("storefront")

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    ensure_secure_settings(settings)
    logger.info("storefront starting env=%s shipping_provider=%s", settings.ENV, settings.SHIPPING_PROVIDER)
    yield
    await close_providers()
    await close_engines()
    logger.info("storefront stopped")


app = FastAPI(
    title="Storefront API",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)

register_exception_handlers(app)
mount_routers(app)


@app.get("/")
async def root():
    return {"name": "storefront-api", "version": APP_VERSION}


@app.get("/ping")
async def ping():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
