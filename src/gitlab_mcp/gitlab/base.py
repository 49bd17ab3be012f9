"""Capability interface the service layer needs from a GitLab client."""

from typing import List, Optional, Protocol, Sequence, Union

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

# Numeric id or full namespace path ("group/sub/project")
ResourceRef = Union[int, str]


class RemoteResourceClient(Protocol):
    """Protocol for the GitLab REST client.

    Every list method fetches a single page. Failures surface as
    ``gitlab.exceptions`` types; a missing project or group raises
    ``GitLabNotFoundError`` distinctly from transport errors.
    """

    async def current_user(self) -> CurrentUser:
        """Return the user owning the configured token."""
        ...

    async def get_project(self, project: ResourceRef) -> ProjectInfo:
        """Resolve a project path or id."""
        ...

    async def get_group(self, group: ResourceRef) -> GroupInfo:
        """Resolve a group path or id."""
        ...

    async def list_project_issues(
        self,
        project: ResourceRef,
        *,
        state: Optional[str] = None,
        labels: Optional[Sequence[str]] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Issue]:
        ...

    async def list_group_issues(
        self,
        group: ResourceRef,
        *,
        state: Optional[str] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Issue]:
        ...

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
        ...

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
        ...

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
        ...

    async def list_pipeline_jobs(
        self,
        project: ResourceRef,
        pipeline_id: int,
        *,
        scope: Optional[Sequence[str]] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[PipelineJob]:
        ...

    async def get_job_trace(self, project: ResourceRef, job_id: int) -> bytes:
        """Return the raw trace blob of a job."""
        ...

    async def list_group_epics(
        self,
        group: ResourceRef,
        *,
        state: Optional[str] = None,
        per_page: int = 100,
        page: int = 1,
    ) -> List[Epic]:
        ...
