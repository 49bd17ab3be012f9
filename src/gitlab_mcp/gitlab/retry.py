"""Status mapping and bounded retries for GitLab HTTP requests.

``retry_with_backoff`` is the only place a GitLab request is repeated:
429, 5xx and connection/timeout failures get up to ``max_retries`` more
attempts with full-jitter backoff. Every failure that escapes is one of the
``gitlab.exceptions`` types.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

import httpx

from .exceptions import (
    GitLabAPIError,
    GitLabAuthError,
    GitLabError,
    GitLabNotFoundError,
    GitLabRateLimitError,
    GitLabTimeoutError,
    GitLabTransportError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0

_BODY_PREVIEW = 500


def retry_after_seconds(response: httpx.Response) -> Optional[float]:
    """Retry-After in seconds; HTTP-date values are ignored."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    retry_after: Optional[float] = None,
) -> float:
    """Server-requested delay when given, else uniform(0, base * 2**attempt), capped."""
    if retry_after is not None:
        return min(retry_after, max_delay)
    return random.uniform(0, min(base_delay * 2**attempt, max_delay))


def status_error(response: httpx.Response) -> GitLabAPIError:
    """Translate a non-2xx GitLab response into its exception type."""
    status = response.status_code
    body = response.text[:_BODY_PREVIEW]

    if status in (401, 403):
        return GitLabAuthError(
            f"Authentication failed: HTTP {status}", status_code=status, response_body=body
        )
    if status == 404:
        return GitLabNotFoundError("Not found: HTTP 404", response_body=body)
    if status == 429:
        return GitLabRateLimitError(
            "Rate limited: HTTP 429",
            retry_after=retry_after_seconds(response),
            response_body=body,
        )
    return GitLabAPIError(f"API error: HTTP {status}", status_code=status, response_body=body)


def _network_error(exc: httpx.RequestError, attempts: int) -> GitLabError:
    if isinstance(exc, httpx.TimeoutException):
        return GitLabTimeoutError(
            f"GitLab request timed out after {attempts} attempt(s): {type(exc).__name__}"
        )
    return GitLabTransportError(f"GitLab unreachable after {attempts} attempt(s): {exc}")


async def retry_with_backoff(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    **kwargs: Any,
) -> Any:
    """Await ``fn(*args, **kwargs)``, repeating transient failures.

    ``fn`` is expected to call ``raise_for_status()``. Auth failures, 404s
    and other 4xx responses are raised on the first attempt.
    """
    attempt = 0
    while True:
        try:
            return await fn(*args, **kwargs)
        except httpx.HTTPStatusError as exc:
            response = exc.response
            if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= max_retries:
                raise status_error(response) from exc
            delay = backoff_delay(
                attempt, base_delay, max_delay, retry_after_seconds(response)
            )
            reason = f"HTTP {response.status_code}"
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            if attempt >= max_retries:
                raise _network_error(exc, attempt + 1) from exc
            delay = backoff_delay(attempt, base_delay, max_delay)
            reason = type(exc).__name__
        except httpx.RequestError as exc:
            raise GitLabTransportError(f"GitLab request failed: {exc}") from exc

        attempt += 1
        logger.warning("GitLab %s, retry %d/%d in %.1fs", reason, attempt, max_retries, delay)
        await asyncio.sleep(delay)
