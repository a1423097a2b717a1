import logging
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_body(message, code: int) -> dict:
    return {"status": "error", "message": message, "code": code}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every ``raise HTTPException`` comes back as ``{"status": "error", ...}``."""
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail, exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed fields are a client error (400), not 422."""
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in exc.errors()]
    fields = [f for f in fields if f]
    message = "Invalid or missing fields: " + ", ".join(fields) if fields else "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, status.HTTP_400_BAD_REQUEST),
    )
