"""Global error handlers."""
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from repochat.exceptions import AppException

logger = structlog.get_logger()


def _problem(status: int, title: str, detail: str, error_type: str = "about:blank", instance: str | None = None) -> JSONResponse:
    content = {"type": error_type, "title": title, "status": status, "detail": detail}
    if instance:
        content["instance"] = instance
    return JSONResponse(status_code=status, content=content)


def setup_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("app_exception", error=exc.detail, kind=type(exc).__name__, path=request.url.path)
        return _problem(exc.status_code, exc.title, exc.detail, exc.error_type, request.url.path)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return _problem(400, "Bad Request", str(exc), instance=request.url.path)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path, exc_info=True)
        return _problem(500, "Internal Server Error", "An unexpected error occurred.")
