"""
HTTP error taxonomy.

Every error is an ``HTTPException`` so FastAPI's routing machinery and the
handlers registered in ``app.main`` render it the same way: a JSON body of
the form ``{"message": ...}`` with the class's status code.
"""
import logging

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=message or self.message)


class NotAuthenticated(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not Authorized"


class InvalidCredentials(NotAuthenticated):
    message = "Authentication failed."


class NoToken(NotAuthenticated):
    message = "No token provided."


class InvalidToken(NotAuthenticated):
    message = "Unauthorized: Invalid token."


class UnknownSubject(NotAuthenticated):
    message = "User not found"


class NotAuthorized(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Not Authorized to perform this action"


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class ValidationFailed(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class ServerError(APIError):
    pass


# ---------------------------------------------------------------------------
# Exception handlers (registered in app.main)
# ---------------------------------------------------------------------------

async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": message, "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # The raw message is returned to the client as-is.
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": str(exc)},
    )
