# routes/resp.py

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskboard.errors import NotFoundError, StoreError, ValidationError
from taskboard.services.reconciler import ReconcileReport

logger = logging.getLogger(__name__)


def ok(data: Any, status_code: int = 200, report: Optional[ReconcileReport] = None) -> JSONResponse:
    body = {"message": "OK", "data": data}
    if report is not None and report.errors:
        body["warnings"] = report.warnings
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "data": []})


def _describe(error: dict) -> str:
    loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc) or "body"
    if error.get("type") == "missing":
        return f"{field} is required"
    if error.get("type") == "extra_forbidden":
        return f"unknown field: {field}"
    return f"{field}: {error.get('msg', 'invalid')}"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return fail(400, "; ".join(_describe(e) for e in exc.errors()))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return fail(400, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return fail(400 if exc.referenced else 404, str(exc))

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return fail(500, "Storage error")

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return fail(500, "Internal server error")
