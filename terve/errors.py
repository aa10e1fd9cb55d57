"""
Domain errors and their HTTP translation
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger()


class TerveError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(TerveError):
    """Malformed request data such as a keyword list or an unknown category"""


class InvalidSessionError(TerveError):
    """Exam submission without a live session for that exam"""


class NotFoundError(TerveError):
    status_code = status.HTTP_404_NOT_FOUND


async def terve_error_handler(request: Request, exc: TerveError):
    logger.warning(
        "request_rejected",
        error_type=type(exc).__name__,
        error=exc.message,
        path=request.url.path,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TerveError, terve_error_handler)
