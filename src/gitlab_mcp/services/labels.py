"""Label listing and validation against a project's ownership chain."""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, Iterable, List, Optional

from ..gitlab.base import RemoteResourceClient
from ..gitlab.exceptions import GitLabError
from ..gitlab.models import Label
from ..gitlab.pagination import MAX_PER_PAGE, page_params
from .errors import LabelValidationError, RemoteCallError
from .fallback import best_effort
from .paths import ancestor_chain
from .projects import require_path, resolve_project

logger = logging.getLogger(__name__)


@dataclass
class ListLabelsOptions:
    with_counts: bool = False
    include_ancestor_groups: bool = True
    search: Optional[str] = None
    limit: Optional[int] = None


async def list_labels(
    client: RemoteResourceClient,
    project_path: str,
    options: Optional[ListLabelsOptions] = None,
) -> List[Label]:
    """List the labels visible in a project."""
    opts = options or ListLabelsOptions()
    project = await resolve_project(client, project_path)
    try:
        labels = await client.list_project_labels(
            project.id,
            search=opts.search,
            with_counts=opts.with_counts,
            include_ancestor_groups=opts.include_ancestor_groups,
            **page_params(opts.limit),
        )
    except GitLabError as e:
        logger.error("Failed to list labels for project %s: %s", project_path, e)
        raise RemoteCallError(f"failed to list labels for project {project_path}", e) from e
    logger.info("Retrieved %d labels for project %s", len(labels), project_path)
    return labels


class LabelHierarchyValidator:
    """Checks requested label names against the project and its ancestor groups.

    Matching is case-insensitive. Each scope is fetched on its own with
    ``include_ancestor_groups=false`` so a label is attributed to the scope
    that defines it. The project itself must resolve and its labels must be
    readable; an ancestor group that cannot be read contributes no labels.

    Args:
        client: GitLab client.
        enabled: When False, ``validate`` accepts everything without remote calls.
        include_ancestors: When False, only the project's own labels count.
    """

    def __init__(
        self,
        client: RemoteResourceClient,
        *,
        enabled: bool = True,
        include_ancestors: bool = True,
    ):
        self.client = client
        self.enabled = enabled
        self.include_ancestors = include_ancestors

    def scopes_for(self, project_path: str) -> List[str]:
        chain = ancestor_chain(require_path(project_path))
        return chain if self.include_ancestors else chain[:1]

    async def _project_labels(self, project_path: str) -> List[Label]:
        project = await resolve_project(self.client, project_path)
        try:
            return await self.client.list_project_labels(
                project.id, include_ancestor_groups=False, per_page=MAX_PER_PAGE, page=1
            )
        except GitLabError as e:
            logger.error("Failed to list labels for project %s: %s", project_path, e)
            raise RemoteCallError(f"failed to list labels for project {project_path}", e) from e

    async def available_labels(self, project_path: str) -> Dict[str, str]:
        """Map lowercased label name to its first-seen spelling across the chain."""
        project_scope, *group_scopes = self.scopes_for(project_path)
        available: Dict[str, str] = {}

        for label in await self._project_labels(project_scope):
            available.setdefault(label.name.lower(), label.name)

        for scope in group_scopes:
            fetch = partial(
                self.client.list_group_labels,
                scope,
                include_ancestor_groups=False,
                per_page=MAX_PER_PAGE,
                page=1,
            )
            result = await best_effort(fetch, f"Fetching labels for group {scope}")
            for label in result.value_or([]):
                available.setdefault(label.name.lower(), label.name)
            logger.debug("Group %s contributed %d labels", scope, len(result.value_or([])))
        return available

    async def validate(self, project_path: str, requested: Iterable[str]) -> None:
        """Raise LabelValidationError if any requested label is defined nowhere in the chain."""
        names = [name for name in requested if name]
        if not self.enabled or not names:
            return

        available = await self.available_labels(project_path)

        missing: List[str] = []
        for name in names:
            if name.lower() not in available and name not in missing:
                missing.append(name)

        if missing:
            logger.warning("Labels not found: %s (project %s)", missing, project_path)
            raise LabelValidationError(project_path, missing, available.values())

        logger.debug("All %d requested labels are valid for %s", len(names), project_path)
