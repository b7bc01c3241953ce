"""Application exceptions rendered as RFC 7807 problem documents."""


class AppException(Exception):
    status_code: int = 500
    error_type: str = "about:blank"
    title: str = "Error"

    def __init__(self, detail: str, status_code: int | None = None, error_type: str | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type


class ProviderError(AppException):
    """Embedding or completion provider unreachable or rejected the request."""

    status_code = 502
    error_type = "/errors/provider"
    title = "AI Provider Error"


class SourceHostError(AppException):
    """GitHub API call failed."""

    status_code = 502
    error_type = "/errors/source-host"
    title = "Source Host Error"


class ConflictError(AppException):
    """An indexing run for this repository is already active."""

    status_code = 409
    error_type = "/errors/conflict"
    title = "Conflict"


class DegenerateVectorError(AppException):
    """Cosine similarity is undefined for zero-magnitude or mismatched vectors."""

    status_code = 422
    error_type = "/errors/degenerate-vector"
    title = "Degenerate Vector"


class NotFoundError(AppException):
    status_code = 404
    error_type = "/errors/not-found"
    title = "Not Found"


class QueueUnavailableError(AppException):
    """The background task broker refused the job."""

    status_code = 503
    error_type = "/errors/queue-unavailable"
    title = "Service Unavailable"
