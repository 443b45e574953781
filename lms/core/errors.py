"""Error taxonomy shared by services and routers.

Services raise these; the exception handlers in ``lms.main`` render
every one of them as ``{"success": false, "message": ..., "code": ...}``
with the class's HTTP status.  A raise site may override ``code`` when a
more specific machine-readable value is useful (``TENANT_NOT_FOUND``,
``BATCH_FULL``).
"""

from __future__ import annotations


class LmsError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class BadRequestError(LmsError):
    status_code = 400
    code = "BAD_REQUEST"


class UnauthorizedError(LmsError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(LmsError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(LmsError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(LmsError):
    status_code = 409
    code = "CONFLICT"


class TooManyRequestsError(LmsError):
    status_code = 429
    code = "TOO_MANY_REQUESTS"

    def __init__(self, message: str, *, retry_after: int, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.retry_after = retry_after


class InternalError(LmsError):
    status_code = 500
    code = "INTERNAL_ERROR"
