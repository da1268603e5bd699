from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .database.db import Database
from .errors import ChatError, RateLimitError, ValidationError
from .logger import configure_logging, get_logger
from .ratelimit import RateLimiter
from .routes import REQUIRED_MESSAGE_ERROR, router
from .services.chat import ChatService
from .services.llm import create_llm
from .services.llm.base import BaseLLM

load_dotenv()

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."


def _request_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "ip": request.client.host if request.client else None,
    }


def _validation_message(errors) -> str:
    """Describe the first field that failed; a bad or missing body blames ``message``."""
    if not errors or errors[0].get("type") == "json_invalid":
        return REQUIRED_MESSAGE_ERROR
    loc = [part for part in errors[0].get("loc", ()) if part != "body"]
    if not loc or loc[0] == "message":
        return REQUIRED_MESSAGE_ERROR
    field = ".".join(str(part) for part in loc)
    return f"Invalid value for '{field}': {errors[0].get('msg', 'invalid')}"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Database] = None,
    llm: Optional[BaseLLM] = None,
) -> FastAPI:
    """Build the application with its store and LLM backend wired in once.

    Tests pass their own ``store`` and ``llm``; in production both are built
    from ``settings``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_file)

    store = store or Database(settings.database_url)
    llm = llm or create_llm(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Environment: %s", settings.environment)
        logger.info("LLM Provider: %s (model %s)", llm.provider, llm.model)
        logger.info("CORS Origin: %s", settings.cors_origin)
        yield
        logger.info("Shutting down")
        store.close()

    app = FastAPI(title="Support Chat", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.chat_service = ChatService(
        store, llm, degraded_seconds=settings.llm_degraded_seconds
    )
    app.state.rate_limiter = RateLimiter(
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
        storage_uri=settings.rate_limit_storage_uri,
    )

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if not request.url.path.startswith("/api"):
            return await call_next(request)

        limiter: RateLimiter = request.app.state.rate_limiter
        client = request.client.host if request.client else "unknown"
        result = limiter.hit(client)
        if not result.allowed:
            logger.warning("Rate limit exceeded %s", _request_context(request))
            error = RateLimitError(RATE_LIMITED_MESSAGE)
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_dict(),
                headers=limiter.headers(result),
            )

        response = await call_next(request)
        response.headers.update(limiter.headers(result))
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(
            "%s %s ip=%s user_agent=%s",
            request.method,
            request.url.path,
            request.client.host if request.client else None,
            request.headers.get("user-agent"),
        )
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        if exc.status_code >= 500:
            logger.error(
                "%s: %s %s", exc.code, exc.message, _request_context(request), exc_info=exc
            )
        else:
            logger.warning("%s: %s %s", exc.code, exc.message, _request_context(request))
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.warning("Invalid request body: %s %s", errors, _request_context(request))
        error = ValidationError(_validation_message(errors))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            error = f"Route {request.method} {request.url.path} not found"
            code = "NOT_FOUND"
        else:
            error = str(exc.detail)
            code = "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": error, "code": code},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error: %s %s", exc, _request_context(request), exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "An unexpected error occurred. Please try again later.",
                "code": "INTERNAL_SERVER_ERROR",
            },
        )

    app.include_router(router)
    return app
