"""
Error responses for the front-desk API.

Whatever goes wrong, the client gets the same JSON shape:
{"error": true, "message", "status_code"} with "field" when a service
rejected a specific input and "details" when the request body itself
did not match the schema.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from frontdesk.exceptions import FrontDeskError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message, headers=None, **extra) -> JSONResponse:
    content = {"error": True, "message": message, "status_code": status_code}
    content.update({key: value for key, value in extra.items() if value})
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def front_desk_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Domain errors raised by the services"""
    if not isinstance(exc, FrontDeskError):
        return await unexpected_error_handler(request, exc)

    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, field=exc.field)


async def access_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """HTTPExceptions from routing and the API key check"""
    code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info("%s %s answered %d", request.method, request.url.path, code)
    return _error_response(code, getattr(exc, "detail", str(exc)), headers=getattr(exc, "headers", None))


def _describe(error) -> dict:
    # Field path without the body/query/path prefix
    location = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
    return {"field": ".".join(location), "message": error["msg"], "type": error["type"]}


async def schema_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Payloads that do not match the request models"""
    problems = [_describe(e) for e in exc.errors()] if isinstance(exc, RequestValidationError) else []
    logger.warning(
        "Malformed request to %s %s: %s",
        request.method, request.url.path, ", ".join(p["field"] or "<root>" for p in problems),
    )
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "Request failed validation", details=problems
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort; the traceback goes to the log, never to the client"""
    logger.error("Unexpected failure handling %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unexpected server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FrontDeskError, front_desk_error_handler)
    app.add_exception_handler(HTTPException, access_error_handler)
    app.add_exception_handler(RequestValidationError, schema_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
