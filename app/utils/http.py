# file: utils/http.py

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Content-Type, Authorization, X-Requested-With, Accept, Accept-Version, "
        "Content-Length, Content-MD5, Date, X-Api-Version, X-CSRF-Token"
    ),
    "Access-Control-Max-Age": "86400",
}


def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    fields = []
    for error in exc.errors():
        loc = [part for part in error.get("loc", ()) if isinstance(part, str) and part not in ("body", "query")]
        if loc:
            name = ".".join(loc)
            if name not in fields:
                fields.append(name)
    if not fields:
        return "Invalid request body"
    return f"Missing or invalid fields: {', '.join(fields)}"


async def cors_and_errors(request: Request, call_next):
    """
    Answers every pre-flight, stamps CORS headers on every response and turns
    anything that escaped the route handlers into a JSON 500.
    """
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        response = error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    response.headers.update(CORS_HEADERS)
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))


def install_http_adapter(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.middleware("http")(cors_and_errors)
