# mla_office/main.py

"""
FastAPI application entry point.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Registers the Celery app so that tasks queued from requests use its broker
import mla_office.worker.app  # noqa: F401
from mla_office.exports.router import router as exports_router
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return "; ".join(messages)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400 with a readable message."""
    detail = _describe_validation_errors(exc)
    logger.info("Rejected invalid request", path=request.url.path, detail=detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


def create_app() -> FastAPI:
    app = FastAPI(title="MLA Office Exports")
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(exports_router)
    return app


app = create_app()
