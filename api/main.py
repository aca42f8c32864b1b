import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.di.container import ApplicationContainer as DependencyContainer
from api.features.chat.exceptions import ChatServiceError, UpstreamError
from api.shared.dtos import ErrorResponse, HealthCheckResponse
from api.shared.exceptions import ChatbotException, NotFoundError, PersistenceError
from core.log_config import configure_logging
from core.settings import SETTINGS

configure_logging(SETTINGS.APP.LOG_LEVEL, SETTINGS.APP.JSON_LOGS)

logger = structlog.get_logger("chatbot")

CHAT_FAILURE_MESSAGE = "Failed to process chat request. Please try again later."
PERSISTENCE_FAILURE_MESSAGE = "A database error occurred. Please try again later."
UNEXPECTED_FAILURE_MESSAGE = "An unexpected error occurred. Please try again later."

HEALTH_PATHS = {"health", "ready", "docs", "redoc", "openapi.json"}

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data: https:; "
        "font-src 'self' data:; "
        "connect-src 'self' http://localhost:3000"
    ),
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.connect() as _conn:
            await _conn.execute(text("SELECT 1"))
        logger.info(
            f"✅ Database connection established in {time.time() - db_start:.2f}s"
        )

        logger.info("Initializing OpenAI client...")
        openai_resource = _app.container.infrastructure.openai_client()
        await openai_resource.init()
        logger.info("✅ OpenAI client initialized")

        logger.info(
            f"✅ Application startup completed in {time.time() - start_time:.2f}s"
        )
    except Exception as e:
        logger.exception(f"❌ Failed to initialize application: {str(e)}")
        raise

    yield

    openai_resource = _app.container.infrastructure.openai_client()
    if openai_resource:
        await openai_resource.shutdown()
    db_resource = _app.container.infrastructure.database()
    if db_resource:
        await db_resource.shutdown()
    logger.info("Application shutdown complete")


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Chatbot API",
        description=(
            "REST API for an AI-powered chatbot backed by OpenAI chat completions, "
            "with persisted conversation history."
        ),
        version="1.0.0",
        contact={"name": "Chatbot Support"},
        license_info={"name": "MIT License", "url": "https://opensource.org/licenses/MIT"},
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.wire(modules=[sys.modules[__name__]])
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=SETTINGS.APP.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    @_app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # Include feature routers
    from api.features.chat.router import router as chat_router
    from api.features.conversation.router import router as conversation_router

    _app.include_router(chat_router, prefix="/api", tags=["Chat"])
    _app.include_router(
        conversation_router, prefix="/api/conversations", tags=["Conversations"]
    )

    return _app


def register_spa_routes(_app: FastAPI, static_dir: Optional[str]) -> None:
    """Serve a built single page app: files by path, everything else index.html."""
    if not static_dir:
        return
    root = Path(static_dir).resolve()
    index = root / "index.html"
    if not index.is_file():
        logger.warning("spa_index_missing", static_dir=str(root))
        return

    @_app.get("/{full_path:path}", include_in_schema=False)
    async def spa(full_path: str):
        first_segment = full_path.split("/", 1)[0]
        if first_segment == "api" or first_segment in HEALTH_PATHS:
            raise HTTPException(status_code=404, detail="Not Found")

        if "." in full_path.rsplit("/", 1)[-1]:
            candidate = (root / full_path).resolve()
            if candidate.is_relative_to(root) and candidate.is_file():
                return FileResponse(candidate)
            raise HTTPException(status_code=404, detail="Not Found")

        return FileResponse(index)


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    body = ErrorResponse(status=status_code, error=error, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


app = create_fastapi_app()


# Health check endpoints
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready", response_model=HealthCheckResponse)
async def ready():
    db_resource = app.container.infrastructure.database()
    async with db_resource.engine.connect() as _conn:
        await _conn.execute(text("SELECT 1"))
    return HealthCheckResponse(status="ok", dependencies={"database": "ok"})


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = "Not Found" if exc.status_code == 404 else "HTTP Error"
    return error_response(exc.status_code, error, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        msg = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        details.setdefault(field, msg)
    logger.warning("request_validation_failed", path=request.url.path, fields=list(details))
    message = ", ".join(f"{field}: {msg}" for field, msg in details.items())
    return error_response(400, "Validation failed", message, details)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info("resource_not_found", path=request.url.path, resource=exc.resource)
    return error_response(404, "Not Found", f"{exc.resource} not found")


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(
        "upstream_error",
        path=request.url.path,
        error_code=exc.error_code,
        error=exc.message,
        cause=repr(exc.__cause__) if exc.__cause__ else None,
    )
    return error_response(500, "Internal Server Error", CHAT_FAILURE_MESSAGE)


@app.exception_handler(ChatServiceError)
async def chat_service_error_handler(request: Request, exc: ChatServiceError):
    logger.error("chat_service_error", path=request.url.path, error=exc.message)
    return error_response(500, "Internal Server Error", CHAT_FAILURE_MESSAGE)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("persistence_error", path=request.url.path, error=exc.message)
    return error_response(500, "Internal Server Error", PERSISTENCE_FAILURE_MESSAGE)


@app.exception_handler(ChatbotException)
async def chatbot_exception_handler(request: Request, exc: ChatbotException):
    logger.error("unhandled_domain_error", path=request.url.path, error_code=exc.error_code)
    return error_response(500, "Internal Server Error", UNEXPECTED_FAILURE_MESSAGE)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", path=request.url.path)
    return error_response(500, "Internal Server Error", UNEXPECTED_FAILURE_MESSAGE)


register_spa_routes(app, SETTINGS.APP.STATIC_DIR)
