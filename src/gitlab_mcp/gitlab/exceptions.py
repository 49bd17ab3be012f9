"""GitLab client exception types.

These are raised by GitLabClient for transport and HTTP-level failures.
The service layer classifies them into domain errors (not found, tier
restriction, ...) using isinstance checks and status codes, never messages.
"""

from typing import Optional


class GitLabError(Exception):
    """Base exception for all GitLab client errors."""

    pass


class GitLabConfigurationError(GitLabError):
    """Client cannot be built from the current settings (missing token, bad URI)."""

    pass


class GitLabAPIError(GitLabError):
    """API returned an error response (4xx/5xx)."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response_body: str = "",
    ):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class GitLabAuthError(GitLabAPIError):
    """Authentication or authorization failure (401/403)."""

    pass


class GitLabNotFoundError(GitLabAPIError):
    """Resource not found (404)."""

    def __init__(self, message: str, response_body: str = ""):
        super().__init__(message, status_code=404, response_body=response_body)


class GitLabRateLimitError(GitLabAPIError):
    """Rate limit exceeded (429). Includes retry_after hint if available."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        response_body: str = "",
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=429, response_body=response_body)


class GitLabTimeoutError(GitLabError):
    """Request timed out after exhausting retries."""

    pass


class GitLabTransportError(GitLabError):
    """Network-level failure other than a timeout (DNS, refused connection, ...)."""

    pass


def is_forbidden(exc: BaseException) -> bool:
    """Return True for a 403 response."""
    return isinstance(exc, GitLabAPIError) and exc.status_code == 403


def is_not_found(exc: BaseException) -> bool:
    """Return True for a 404 response."""
    return isinstance(exc, GitLabNotFoundError)
