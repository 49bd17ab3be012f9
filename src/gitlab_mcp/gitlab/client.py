"""GitLab REST API v4 client.

Supports gitlab.com and self-hosted instances. Authenticates with a
personal/project access token sent in the PRIVATE-TOKEN header.
"""

import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import Settings
from ..observability.metrics import record_gitlab_request
from .base import ResourceRef
from .exceptions import GitLabConfigurationError
from .models import (
    CurrentUser,
    Epic,
    GroupInfo,
    Issue,
    Label,
    Pipeline,
    PipelineJob,
    ProjectInfo,
)
from .retry import DEFAULT_MAX_RETRIES, retry_with_backoff

logger = logging.getLogger(__name__)


def encode_path(resource: ResourceRef) -> str:
    """URL-encode a project or group reference for use in API paths.

    GitLab accepts both numeric IDs and URL-encoded namespace paths
    (e.g. "group%2Fproject"). Numeric values are passed through unchanged.
    """
    if str(resource).isdigit():
        return str(resource)
    return urllib.parse.quote(str(resource), safe="")


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class GitLabClient:
    """Async GitLab client used by the service layer.

    Owns one ``httpx.AsyncClient`` (connection pool) for its lifetime; call
    ``aclose()`` or use it as an async context manager.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise GitLabConfigurationError("GITLAB_TOKEN environment variable is required")
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "PRIVATE-TOKEN": token,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GitLabClient":
        """Build a client from GITLAB_* settings."""
        return cls(
            settings.api_url,
            settings.gitlab_token or "",
            timeout=settings.gitlab_request_timeout,
            max_retries=settings.gitlab_max_retries,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "GitLabClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request with retry; raises gitlab.exceptions types on failure."""
        query = _drop_none(params or {})

        async def _do_request():
            try:
                response = await self._http.request(method, path, params=query)
            except httpx.RequestError:
                record_gitlab_request(method, None)
                raise
            record_gitlab_request(method, response.status_code)
            response.raise_for_status()
            return response

        logger.debug("GitLab %s %s params=%s", method, path, query)
        return await retry_with_backoff(_do_request, max_retries=self.max_retries)

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("GET", path, params)
        return response.json()

    # ------------------------------------------------------------------
    # Users, projects, groups
    # ------------------------------------------------------------------

    async def current_user(self) -> CurrentUser:
        """Get the token owner (GET /user)."""
        return CurrentUser.from_api(await self._get_json("/user"))

    async def get_project(self, project: ResourceRef) -> ProjectInfo:
        """Get project details (GET /projects/{id})."""
        data = await self._get_json(f"/projects/{encode_path(project)}")
        return ProjectInfo.from_api(data)

    async def get_group(self, group: ResourceRef) -> GroupInfo:
        """Get group details (GET /groups/{id})."""
        data = await self._get_json(
            f"/groups/{encode_path(group)}",
            {"with_projects": "false"},
        )
        return GroupInfo.from_api(data)

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def list_project_issues(
        self,
        project: ResourceRef,
        *,
        state: Optional[str] = None,
        labels: Optional[Sequence[str]] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Issue]:
        """List issues (GET /projects/{id}/issues)."""
        params = {
            "state": state,
            "labels": ",".join(labels) if labels else None,
            "per_page": per_page,
            "page": page,
        }
        data = await self._get_json(f"/projects/{encode_path(project)}/issues", params)
        return [Issue.from_api(item) for item in data]

    async def list_group_issues(
        self,
        group: ResourceRef,
        *,
        state: Optional[str] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Issue]:
        """List issues across a group (GET /groups/{id}/issues)."""
        params = {"state": state, "per_page": per_page, "page": page}
        data = await self._get_json(f"/groups/{encode_path(group)}/issues", params)
        return [Issue.from_api(item) for item in data]

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    async def list_project_labels(
        self,
        project: ResourceRef,
        *,
        search: Optional[str] = None,
        with_counts: bool = False,
        include_ancestor_groups: bool = False,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Label]:
        """List labels (GET /projects/{id}/labels)."""
        params = {
            "search": search or None,
            "with_counts": str(with_counts).lower(),
            "include_ancestor_groups": str(include_ancestor_groups).lower(),
            "per_page": per_page,
            "page": page,
        }
        data = await self._get_json(f"/projects/{encode_path(project)}/labels", params)
        return [Label.from_api(item) for item in data]

    async def list_group_labels(
        self,
        group: ResourceRef,
        *,
        search: Optional[str] = None,
        with_counts: bool = False,
        include_ancestor_groups: bool = False,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Label]:
        """List labels (GET /groups/{id}/labels)."""
        params = {
            "search": search or None,
            "with_counts": str(with_counts).lower(),
            "include_ancestor_groups": str(include_ancestor_groups).lower(),
            "per_page": per_page,
            "page": page,
        }
        data = await self._get_json(f"/groups/{encode_path(group)}/labels", params)
        return [Label.from_api(item) for item in data]

    # ------------------------------------------------------------------
    # Pipelines and jobs
    # ------------------------------------------------------------------

    async def list_project_pipelines(
        self,
        project: ResourceRef,
        *,
        ref: Optional[str] = None,
        order_by: Optional[str] = None,
        sort: Optional[str] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Pipeline]:
        """List pipelines (GET /projects/{id}/pipelines)."""
        params = {
            "ref": ref or None,
            "order_by": order_by,
            "sort": sort,
            "per_page": per_page,
            "page": page,
        }
        data = await self._get_json(f"/projects/{encode_path(project)}/pipelines", params)
        return [Pipeline.from_api(item) for item in data]

    async def list_pipeline_jobs(
        self,
        project: ResourceRef,
        pipeline_id: int,
        *,
        scope: Optional[Sequence[str]] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[PipelineJob]:
        """List jobs of a pipeline (GET /projects/{id}/pipelines/{pipeline_id}/jobs)."""
        params: Dict[str, Any] = {"per_page": per_page, "page": page}
        if scope:
            params["scope[]"] = list(scope)
        data = await self._get_json(
            f"/projects/{encode_path(project)}/pipelines/{pipeline_id}/jobs", params
        )
        return [PipelineJob.from_api(item) for item in data]

    async def get_job_trace(self, project: ResourceRef, job_id: int) -> bytes:
        """Get a job log (GET /projects/{id}/jobs/{job_id}/trace)."""
        response = await self._request(
            "GET", f"/projects/{encode_path(project)}/jobs/{job_id}/trace"
        )
        return response.content

    # ------------------------------------------------------------------
    # Epics
    # ------------------------------------------------------------------

    async def list_group_epics(
        self,
        group: ResourceRef,
        *,
        state: Optional[str] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Epic]:
        """List epics (GET /groups/{id}/epics)."""
        params = {"state": state, "per_page": per_page, "page": page}
        data = await self._get_json(f"/groups/{encode_path(group)}/epics", params)
        return [Epic.from_api(item) for item in data]
