"""Issue aggregation across a project and its parent group."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..gitlab.base import RemoteResourceClient
from ..gitlab.exceptions import GitLabError
from ..gitlab.models import Issue
from ..gitlab.pagination import page_params
from .errors import RemoteCallError
from .fallback import Secondary, best_effort
from .paths import parent_path
from .projects import resolve_project

logger = logging.getLogger(__name__)

DEFAULT_ISSUE_STATE = "opened"


@dataclass
class ListIssuesOptions:
    """Filters for an issue listing."""

    state: str = DEFAULT_ISSUE_STATE
    labels: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    include_group_issues: bool = True


def parse_label_list(raw: Optional[str]) -> List[str]:
    """Split a comma-separated label string, dropping blank entries."""
    if not raw:
        return []
    return [label.strip() for label in raw.split(",") if label.strip()]


def merge_issues(
    project_issues: Sequence[Issue],
    group_issues: Sequence[Issue],
    project_id: int,
) -> List[Issue]:
    """Append group issues from other projects after the project's own issues.

    Group issues owned by ``project_id`` are already in ``project_issues``
    and are dropped. Neither input is modified; ordering on each side is kept.
    """
    merged = list(project_issues)
    merged.extend(issue for issue in group_issues if issue.project_id != project_id)
    return merged


class IssueAggregator:
    """Lists a project's issues, optionally merged with its parent group's."""

    def __init__(self, client: RemoteResourceClient):
        self.client = client

    async def list_issues(
        self, project_path: str, options: Optional[ListIssuesOptions] = None
    ) -> List[Issue]:
        opts = options or ListIssuesOptions()
        state = opts.state or DEFAULT_ISSUE_STATE
        paging = page_params(opts.limit)

        logger.debug(
            "Listing issues for %s (state=%s, labels=%s, limit=%d, include_group=%s)",
            project_path, state, opts.labels, paging["per_page"], opts.include_group_issues,
        )

        project = await resolve_project(self.client, project_path)

        try:
            project_issues = await self.client.list_project_issues(
                project.id, state=state, labels=opts.labels or None, **paging
            )
        except GitLabError as e:
            logger.error("Failed to list issues for project %s: %s", project_path, e)
            raise RemoteCallError(f"failed to list issues for project {project_path}", e) from e

        if not opts.include_group_issues:
            logger.info("Retrieved %d project issues for %s", len(project_issues), project_path)
            return project_issues

        group_path = parent_path(project_path)
        if group_path is None:
            logger.debug("Project path %s has no parent group; skipping group issues", project_path)
            return project_issues

        # Group labels differ from the project's, so the label filter is not forwarded.
        group_result: Secondary[List[Issue]] = await best_effort(
            lambda: self.client.list_group_issues(group_path, state=state, **paging),
            f"Fetching group issues for {group_path}",
        )
        if group_result.failed:
            return project_issues

        merged = merge_issues(project_issues, group_result.value_or([]), project.id)
        logger.info(
            "Retrieved %d issues for %s (%d from project, %d from group %s)",
            len(merged), project_path, len(project_issues),
            len(merged) - len(project_issues), group_path,
        )
        return merged
