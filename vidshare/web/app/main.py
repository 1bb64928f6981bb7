# vidshare/web/app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidshare.web.app.config import get_settings
from vidshare.web.app.db import init_db
from vidshare.web.app.errors import AppError
from vidshare.web.app.responses import error_response
from vidshare.web.app.services.logging_service import LoggingMiddleware, get_logger, setup_logging

# Import API routes
from vidshare.web.app.api import (
    channels, comments, likes, password_reset, playlists, subscriptions,
    tweets, users, videos
)

settings = get_settings()
setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(f"{settings.APP_NAME} {settings.VERSION} started")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Video sharing platform: channels, subscriptions, likes, comments, tweets and playlists.",
    version=settings.VERSION,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.message}: {request.method} {request.url.path}",
                     exc_info=exc, extra={'errors': exc.errors})
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
        for error in exc.errors()
    ]
    return error_response(400, "Invalid request", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error: {request.method} {request.url.path}", exc_info=exc)
    return error_response(500, "Internal server error")


# API routes
app.include_router(users.router)
app.include_router(password_reset.router)
app.include_router(channels.router)
app.include_router(videos.router)
app.include_router(subscriptions.router)
app.include_router(likes.router)
app.include_router(comments.router)
app.include_router(tweets.router)
app.include_router(playlists.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "web", "version": settings.VERSION}
