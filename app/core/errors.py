import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Business-rule violation with a stable code surfaced to API clients."""

    code = "DomainError"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request violates a business rule"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class NotFound(DomainError):
    code = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class NotOwner(DomainError):
    code = "NotOwner"
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have permission to modify this resource"


class InvalidTransition(DomainError):
    code = "InvalidTransition"
    status_code = status.HTTP_409_CONFLICT
    message = "Status change is not allowed from the current state"


class AlreadyBid(DomainError):
    code = "AlreadyBid"
    status_code = status.HTTP_409_CONFLICT
    message = "You have already bid on this advertisement"


class AdvertisementClosed(DomainError):
    code = "AdvertisementClosed"
    message = "Advertisement is not accepting bids"


class InvalidTerms(DomainError):
    code = "InvalidTerms"
    message = "Invalid bid terms"


class InvalidRating(DomainError):
    code = "InvalidRating"
    message = "Rating must be an integer between 1 and 5"


class NotEligible(DomainError):
    code = "NotEligible"
    message = "Can only review after contract completion"


class DuplicateReview(DomainError):
    code = "DuplicateReview"
    status_code = status.HTTP_409_CONFLICT
    message = "Review already submitted"


class InsufficientCredits(DomainError):
    code = "InsufficientCredits"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    message = "Insufficient bid credits"


_HTTP_CODES = {
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_404_NOT_FOUND: "NotFound",
}


def _error_body(message: str, code: str) -> dict:
    return {"success": False, "error": message, "code": code}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HttpError")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid request")
    return JSONResponse(status_code=422, content=_error_body(message, "ValidationError"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
