"""Domain errors and their HTTP rendering.

Every error carries a machine-readable ``error_code`` and, where the caller can
act on it, structured fields (wait times, character counts). Fields are keyed
in camelCase because they go straight into the JSON body.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "BAD_REQUEST"
    message: str = "Bad request"

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        headers: dict[str, str] | None = None,
        **fields: Any,
    ) -> None:
        self.message = message or self.message
        if error_code:
            self.error_code = error_code
        self.headers = headers
        self.fields = fields
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"errorCode": self.error_code, "message": self.message, **self.fields}


class ValidationFailed(DomainError):
    error_code = "VALIDATION_ERROR"
    message = "Invalid input"


class UnauthorizedError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    message = "Unauthorized"


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    message = "Forbidden"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Not found"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    message = "Conflict"


class EmailTaken(ConflictError):
    error_code = "EMAIL_TAKEN"
    message = "Email already registered"


class InvalidCredentials(UnauthorizedError):
    error_code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class TooManyRequests(DomainError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "TOO_MANY_REQUESTS"
    message = "Too many requests"


class EmailNotActivated(ForbiddenError):
    error_code = "EMAIL_NOT_ACTIVATED"
    message = "Please activate your email before writing reviews"


class RegisterCooldown(DomainError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "REGISTER_COOLDOWN"
    message = "Please wait after registration before submitting a review"


class ReviewsLimitExceeded(DomainError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "REVIEWS_LIMIT_EXCEEDED"
    message = "Review limit for this period exceeded"


class TextTooShort(ValidationFailed):
    error_code = "TEXT_TOO_SHORT"
    message = "Review text is too short"


class ReviewAlreadyExists(ConflictError):
    error_code = "REVIEW_ALREADY_EXISTS"
    message = "You have already reviewed this company"


class DuplicateReviewText(ConflictError):
    error_code = "DUPLICATE_REVIEW_TEXT"
    message = "You have already submitted a review with this text"


class CannotReactToOwnReview(ForbiddenError):
    error_code = "CANNOT_REACT_TO_OWN_REVIEW"
    message = "You cannot react to your own review"


class ReviewNotPublished(ConflictError):
    error_code = "REVIEW_NOT_PUBLISHED"
    message = "Review is awaiting moderation"


class CannotReportOwnReview(ForbiddenError):
    error_code = "CANNOT_REPORT_OWN_REVIEW"
    message = "You cannot report your own review"


class AlreadyReported(ConflictError):
    error_code = "ALREADY_REPORTED"
    message = "You have already reported this review"


class CanOnlyDeleteOwnReviews(ForbiddenError):
    error_code = "CAN_ONLY_DELETE_OWN_REVIEWS"
    message = "You can only delete your own reviews"


async def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()})
    body = ValidationFailed("Malformed request body", fields=fields).to_dict()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def _domain_error_response(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.error_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_response)
    app.add_exception_handler(RequestValidationError, _validation_error_response)
