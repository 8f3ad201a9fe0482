import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from config import settings
from dataBase import db, ensure_indexes
from logging_config import setup_logging
from routes import auth_routes, book_routes, exchange_routes
from services.errors import BookSwapError, ValidationFailedError

logger = logging.getLogger(__name__)


async def bookswap_error_handler(request: Request, exc: BookSwapError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationFailedError.from_pydantic(exc)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes(db)
    logger.info("%s %s started", settings.project_name, settings.api_version)
    yield


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BookSwapError, bookswap_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(auth_routes, prefix=settings.api_prefix)
    app.include_router(book_routes, prefix=settings.api_prefix)
    app.include_router(exchange_routes, prefix=settings.api_prefix)

    os.makedirs(settings.upload_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/docs")

    return app


app = create_app()
