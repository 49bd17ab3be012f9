"""Best-effort secondary fetches.

Group issues and ancestor labels enrich a primary result but must never
sink it. ``best_effort`` runs such a fetch and returns a ``Secondary``
holding either the value or the failure, so the caller decides on the
fallback explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Secondary(Generic[T]):
    """Outcome of a best-effort fetch: a value, or the error that replaced it."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def value_or(self, default: T) -> T:
        return default if self.failed or self.value is None else self.value


async def best_effort(
    fetch: Callable[[], Awaitable[T]],
    description: str,
) -> Secondary[T]:
    """Await ``fetch()``; any exception becomes a failed ``Secondary``."""
    try:
        return Secondary(value=await fetch())
    except Exception as e:
        logger.warning("%s failed, continuing without it: %s", description, e)
        return Secondary(error=e)
