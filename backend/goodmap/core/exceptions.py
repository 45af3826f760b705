"""Error taxonomy shared by the service layer and the HTTP layer.

Services raise these; ``goodmap.main`` turns them into JSON error responses
with the matching status code.
"""


class GoodMapError(Exception):
    """Base error. Anything not covered by a subclass is an internal error."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(GoodMapError):
    status_code = 400


class ConflictError(GoodMapError):
    # Duplicate coordinates and "marker still has posts" both surface as 400.
    status_code = 400


class UnauthorizedError(GoodMapError):
    status_code = 401


class ForbiddenError(GoodMapError):
    status_code = 403


class NotFoundError(GoodMapError):
    status_code = 404


class RateLimitedError(GoodMapError):
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: int = 300):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
