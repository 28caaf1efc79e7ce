import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic_core import _pydantic_core
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.exceptions import CareerChatException, http_status_for
from core.logging_config import configure_logging
from core.settings import SETTINGS
from di.container import ApplicationContainer as DependencyContainer

configure_logging(SETTINGS.APP)

logger = logging.getLogger("career_chat")

CORS_ORIGINS = {
    "*",
    "http://localhost",
    "http://localhost:*",
    "http://localhost:8501",
    "http://localhost:8000",
}


class CustomFastAPI(FastAPI):
    container: DependencyContainer


async def _check_database(db_resource) -> None:
    """Open the engine and run a trivial query; Postgres also gets lock/statement timeouts."""
    await db_resource.init()
    async with db_resource.engine.begin() as conn:
        if not db_resource.is_sqlite:
            await conn.execute(text("SET lock_timeout = '4s'"))
            await conn.execute(text("SET statement_timeout = '8s'"))
        await conn.execute(text("SELECT 1"))


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    start_time = time.time()
    db_resource = _app.container.infrastructure.database()
    try:
        await _check_database(db_resource)
        logger.info(f"Database ready in {time.time() - start_time:.2f}s")
    except Exception as e:
        logger.exception(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def _error_body(error: str, detail, status_code: int, **extra) -> dict:
    return {"error": error, "detail": detail, "status_code": status_code, **extra}


def register_exception_handlers(_app: FastAPI) -> None:
    @_app.exception_handler(404)
    async def not_found_handler(request: Request, exc: HTTPException):
        detail = getattr(exc, "detail", "Not Found")
        return JSONResponse(
            status_code=404,
            content=_error_body("Not Found", f"{detail} : {request.url}", 404),
        )

    @_app.exception_handler(CareerChatException)
    async def career_chat_handler(request: Request, exc: CareerChatException):
        status_code = http_status_for(exc)
        return JSONResponse(
            status_code=status_code,
            content=_error_body(
                exc.error_code, exc.message, status_code, details=exc.details
            ),
        )

    @_app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body("Validation Error", str(exc), 422),
        )

    @_app.exception_handler(_pydantic_core.ValidationError)
    async def pydantic_validation_handler(
        request: Request, exc: _pydantic_core.ValidationError
    ):
        return JSONResponse(
            status_code=422,
            content=_error_body("Validation Error", str(exc), 422),
        )

    @_app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.url.path}: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "Internal Server Error", "An unexpected error occurred", 500
            ),
        )


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Career Chat API",
        description="Career-advice chat sessions backed by a hosted language model",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    _app.container = DependencyContainer()
    _app.container.infrastructure.config.from_dict(SETTINGS.model_dump())
    _app.container.wire(modules=[sys.modules[__name__]])
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=list(CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.features.conversation.router import router as chat_router

    _app.include_router(chat_router, prefix="/api/v1/chat", tags=["Chat"])
    register_exception_handlers(_app)

    @_app.get("/")
    async def root():
        return {"message": "Career Chat API is running", "status": "ok"}

    @_app.get("/health")
    async def health():
        return {"status": "ok"}

    @_app.get("/ready")
    async def ready():
        return {"status": "ok"}

    return _app


app = create_fastapi_app()
