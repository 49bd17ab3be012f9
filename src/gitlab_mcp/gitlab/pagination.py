"""Page-size normalization for GitLab list endpoints.

Only the first page is ever requested; callers needing more narrow their
filters instead of paging.
"""

from typing import Any, Dict, Optional

MAX_PER_PAGE = 100
FIRST_PAGE = 1


def normalize_limit(limit: Optional[int]) -> int:
    """Clamp a caller-supplied limit to 1..100; absent or non-positive means 100."""
    if limit is None or limit <= 0:
        return MAX_PER_PAGE
    return min(limit, MAX_PER_PAGE)


def page_params(limit: Optional[int] = None) -> Dict[str, Any]:
    """Return the page/per_page query parameters for a single-page request."""
    return {"per_page": normalize_limit(limit), "page": FIRST_PAGE}
