"""Group epic listing (GitLab Premium/Ultimate)."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..gitlab.base import RemoteResourceClient
from ..gitlab.exceptions import GitLabError, is_forbidden
from ..gitlab.models import Epic
from ..gitlab.pagination import page_params
from .errors import RemoteCallError, TierRestrictionError
from .projects import resolve_group

logger = logging.getLogger(__name__)

DEFAULT_EPIC_STATE = "opened"


@dataclass
class ListEpicsOptions:
    state: str = DEFAULT_EPIC_STATE
    limit: Optional[int] = None


async def list_group_epics(
    client: RemoteResourceClient,
    group_path: str,
    options: Optional[ListEpicsOptions] = None,
) -> List[Epic]:
    """List a group's epics; a 403 anywhere on the way is a tier restriction."""
    opts = options or ListEpicsOptions()

    try:
        group = await resolve_group(client, group_path)
    except GitLabError as e:
        if is_forbidden(e):
            raise TierRestrictionError(
                "epics",
                "group access may require Premium/Ultimate tier or epics feature is not enabled",
            ) from e
        raise RemoteCallError(f"failed to get group {group_path}", e) from e

    try:
        epics = await client.list_group_epics(
            group.id, state=opts.state or DEFAULT_EPIC_STATE, **page_params(opts.limit)
        )
    except GitLabError as e:
        if is_forbidden(e):
            logger.warning("Epics unavailable for group %s: HTTP 403", group_path)
            raise TierRestrictionError(
                "epics", "epics are only available in GitLab Premium or Ultimate tier"
            ) from e
        logger.error("Failed to list epics for group %s: %s", group_path, e)
        raise RemoteCallError(f"failed to list epics for group {group_path}", e) from e

    logger.info("Retrieved %d epics for group %s", len(epics), group_path)
    return epics
