"""Project and group resolution shared by every service."""

import logging
from typing import Any, Dict

from ..gitlab.base import RemoteResourceClient
from ..gitlab.exceptions import GitLabError, is_not_found
from ..gitlab.models import GroupInfo, ProjectInfo
from .errors import (
    GroupNotFoundError,
    InvalidArgumentError,
    ProjectNotFoundError,
    RemoteCallError,
)

logger = logging.getLogger(__name__)


def require_path(value: str, name: str = "project_path") -> str:
    """Return ``value`` stripped of surrounding slashes, rejecting empty input."""
    path = (value or "").strip().strip("/")
    if not path:
        raise InvalidArgumentError(f"{name} is required")
    return path


async def resolve_project(client: RemoteResourceClient, project_path: str) -> ProjectInfo:
    """Resolve a namespace path to its project; 404 becomes ProjectNotFoundError."""
    path = require_path(project_path)
    try:
        project = await client.get_project(path)
    except GitLabError as e:
        if is_not_found(e):
            logger.error("Project not found: %s", path)
            raise ProjectNotFoundError(path) from e
        logger.error("Failed to resolve project %s: %s", path, e)
        raise RemoteCallError(f"failed to get project {path}", e) from e
    logger.debug("Resolved project %s to id %d", path, project.id)
    return project


async def resolve_group(client: RemoteResourceClient, group_path: str) -> GroupInfo:
    """Resolve a namespace path to its group; 404 becomes GroupNotFoundError.

    Other GitLab errors propagate unchanged so the caller can classify them
    (a 403 on a group means something different for epics than elsewhere).
    """
    path = require_path(group_path, "group_path")
    try:
        group = await client.get_group(path)
    except GitLabError as e:
        if is_not_found(e):
            logger.error("Group not found: %s", path)
            raise GroupNotFoundError(path) from e
        raise
    logger.debug("Resolved group %s to id %d", path, group.id)
    return group


async def get_project_description(
    client: RemoteResourceClient, project_path: str
) -> Dict[str, Any]:
    project = await resolve_project(client, project_path)
    logger.info("Retrieved description for project %s", project_path)
    return {
        "id": project.id,
        "name": project.name,
        "path": project.path,
        "description": project.description,
    }


async def get_project_topics(
    client: RemoteResourceClient, project_path: str
) -> Dict[str, Any]:
    project = await resolve_project(client, project_path)
    logger.info("Retrieved %d topics for project %s", len(project.topics), project_path)
    return {
        "id": project.id,
        "name": project.name,
        "path": project.path,
        "topics": project.topics,
    }
