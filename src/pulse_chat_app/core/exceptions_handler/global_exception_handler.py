import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception):
    """Last resort for anything a route did not turn into an HTTPException."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)

    content = {
        "status": "fail",
        "message": "Internal server error",
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    # Only expose the cause when the app runs with debug on
    if request.app.debug:
        content["error_details"] = f"{type(exc).__name__}: {exc}"

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
