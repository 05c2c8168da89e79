"""
Domain errors

Each error carries the HTTP status the API layer renders it with. The body
shape matches FastAPI's HTTPException: {"detail": "..."}.
"""


class AppError(Exception):
    status_code = 500
    detail = "Internal server error"

    def __init__(self, detail=None):
        self.detail = detail or self.detail
        super().__init__(self.detail)


class InvalidReference(AppError):
    status_code = 400
    detail = "Invalid id format"


class ValidationFailed(AppError):
    status_code = 400
    detail = "Invalid request"


class QueryRejected(AppError):
    """The store refused the query itself; retrying will not help."""

    status_code = 400
    detail = "Query rejected by the database"


class StoreError(AppError):
    status_code = 500
    detail = "Database error"


class Unauthorized(AppError):
    status_code = 401
    detail = "Not authenticated"


class Forbidden(AppError):
    status_code = 403
    detail = "Not allowed"


class NotFound(AppError):
    status_code = 404
    detail = "Not found"


class MediaStoreError(AppError):
    status_code = 502
    detail = "Media storage failed, please try again"


class StoreUnavailable(AppError):
    """The document store failed; safe to retry."""

    status_code = 503
    detail = "Database unavailable, please retry"
