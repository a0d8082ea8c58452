# offerdesk/main.py
import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from offerdesk.auth import CredentialRegistry
from offerdesk.core.errors import AppError, InternalError
from offerdesk.core.logging_config import setup_logging
from offerdesk.core.scheduler import build_scheduler, start_scheduler, stop_scheduler
from offerdesk.core.settings import Settings, settings as default_settings
from offerdesk.services.sweeper import Sweeper
from offerdesk.services.tag_search import TagSearchTaskManager
from offerdesk.storage import ASSETS_URL_PREFIX
from offerdesk.store import build_store

logger = logging.getLogger("offerdesk")


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc or 'request'}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    cfg = (cfg or default_settings).normalized()
    setup_logging(cfg.LOG_LEVEL)

    # -------------------------------------------------------------------
    # FastAPI app setup
    # -------------------------------------------------------------------
    app = FastAPI(title="Offerdesk", version="1.0")

    store = build_store(cfg)
    scheduler = build_scheduler(cfg)
    app.state.settings = cfg
    app.state.store = store
    app.state.scheduler = scheduler
    app.state.sweeper = Sweeper(store)
    app.state.tag_search = TagSearchTaskManager(
        store,
        scheduler,
        delay_seconds=cfg.TAG_SEARCH_DELAY_SECONDS,
        ttl_seconds=cfg.TAG_SEARCH_TTL_SECONDS,
    )
    app.state.credentials = CredentialRegistry(cfg.ROLE_CREDENTIALS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------
    # Log every request
    # -------------------------------------------------------------------
    @app.middleware("http")
    async def log_every_request(request: Request, call_next):
        logger.info("[REQ] %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("[RES] %s for %s", response.status_code, request.url.path)
        return response

    # -------------------------------------------------------------------
    # Error mapping: every error body is {"message": ...}
    # -------------------------------------------------------------------
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse({"message": exc.response_message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse({"message": _format_validation_errors(exc)}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"message": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"message": InternalError.public_message}, status_code=InternalError.status_code)

    # -------------------------------------------------------------------
    # Uploaded files
    # -------------------------------------------------------------------
    # directory is created on startup
    app.mount(ASSETS_URL_PREFIX, StaticFiles(directory=cfg.ASSETS_DIR, check_dir=False), name="assets")

    # -------------------------------------------------------------------
    # Routers
    # -------------------------------------------------------------------
    from offerdesk.api import comments, customers, files, offers, tags

    app.include_router(customers.router)
    app.include_router(offers.router)
    app.include_router(comments.router)
    app.include_router(files.router)
    app.include_router(tags.router)

    # -------------------------------------------------------------------
    # Health check
    # -------------------------------------------------------------------
    @app.get("/health", include_in_schema=False)
    async def health():
        return {"ok": True}

    # -------------------------------------------------------------------
    # Startup / shutdown
    # -------------------------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        os.makedirs(cfg.ASSETS_DIR, exist_ok=True)
        await store.init()
        start_scheduler(scheduler, cfg, app.state.sweeper, app.state.tag_search)
        logger.info("offerdesk started env=%s store=%s", cfg.ENV, store.backend)

    @app.on_event("shutdown")
    async def on_shutdown():
        stop_scheduler(scheduler)
        await store.close()

    return app


app = create_app()
