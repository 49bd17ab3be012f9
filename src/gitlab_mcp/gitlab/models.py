"""Pydantic models for the GitLab entities this server reads.

Each model has a ``from_api`` constructor that picks the fields we expose
out of a raw REST v4 payload. Timestamps stay as the ISO-8601 strings
GitLab returns.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Assignee(BaseModel):
    """User assigned to an issue."""

    id: int
    username: str
    name: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Assignee":
        return cls(
            id=data["id"],
            username=data.get("username", ""),
            name=data.get("name", ""),
        )


class Issue(BaseModel):
    """Project or group issue."""

    id: int
    iid: int
    project_id: int = Field(..., description="Owning project; used to deduplicate group listings")
    title: str
    description: Optional[str] = None
    state: str
    labels: List[str] = Field(default_factory=list)
    assignees: List[Assignee] = Field(default_factory=list)
    web_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Issue":
        return cls(
            id=data["id"],
            iid=data["iid"],
            project_id=data["project_id"],
            title=data.get("title", ""),
            description=data.get("description"),
            state=data.get("state", ""),
            labels=list(data.get("labels") or []),
            assignees=[Assignee.from_api(a) for a in data.get("assignees") or []],
            web_url=data.get("web_url"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class Label(BaseModel):
    """Project or group label."""

    id: int
    name: str
    color: Optional[str] = None
    text_color: Optional[str] = None
    description: Optional[str] = None
    open_issues_count: int = 0
    closed_issues_count: int = 0
    open_merge_requests_count: int = 0
    subscribed: bool = False
    priority: Optional[int] = None
    is_project_label: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Label":
        return cls(
            id=data["id"],
            name=data["name"],
            color=data.get("color"),
            text_color=data.get("text_color"),
            description=data.get("description"),
            open_issues_count=data.get("open_issues_count") or 0,
            closed_issues_count=data.get("closed_issues_count") or 0,
            open_merge_requests_count=data.get("open_merge_requests_count") or 0,
            subscribed=bool(data.get("subscribed", False)),
            priority=data.get("priority"),
            is_project_label=bool(data.get("is_project_label", False)),
        )


class Pipeline(BaseModel):
    """CI/CD pipeline summary."""

    id: int
    iid: Optional[int] = None
    project_id: Optional[int] = None
    status: str
    source: Optional[str] = None
    ref: Optional[str] = None
    sha: Optional[str] = None
    web_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Pipeline":
        return cls(
            id=data["id"],
            iid=data.get("iid"),
            project_id=data.get("project_id"),
            status=data.get("status", ""),
            source=data.get("source"),
            ref=data.get("ref"),
            sha=data.get("sha"),
            web_url=data.get("web_url"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class JobRunner(BaseModel):
    """Runner that executed a job."""

    id: int
    description: Optional[str] = None
    active: bool = False

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["JobRunner"]:
        """Return None when the job has no runner or GitLab reports runner id 0."""
        if not data or not data.get("id"):
            return None
        return cls(
            id=data["id"],
            description=data.get("description"),
            active=bool(data.get("active", False)),
        )


class PipelineJob(BaseModel):
    """CI/CD job belonging to a pipeline."""

    id: int
    name: str
    stage: str
    status: str
    ref: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    duration: Optional[float] = None
    queued_duration: Optional[float] = None
    failure_reason: Optional[str] = None
    web_url: Optional[str] = None
    pipeline_id: Optional[int] = None
    runner: Optional[JobRunner] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PipelineJob":
        pipeline = data.get("pipeline") or {}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            stage=data.get("stage", ""),
            status=data.get("status", ""),
            ref=data.get("ref"),
            created_at=data.get("created_at"),
            started_at=data.get("started_at"),
            finished_at=data.get("finished_at"),
            duration=data.get("duration"),
            queued_duration=data.get("queued_duration"),
            failure_reason=data.get("failure_reason") or None,
            web_url=data.get("web_url"),
            pipeline_id=pipeline.get("id"),
            runner=JobRunner.from_api(data.get("runner")),
        )


class JobLog(BaseModel):
    """Job metadata together with its raw trace."""

    job_id: int
    job_name: str
    status: str
    stage: str
    ref: Optional[str] = None
    pipeline_id: int
    web_url: Optional[str] = None
    log_content: str
    log_size: int = Field(..., description="Byte length of log_content, computed locally")


class DownloadJobTraceResult(BaseModel):
    """Outcome of saving a job trace to disk."""

    job_id: int
    job_name: str
    status: str
    stage: str
    ref: Optional[str] = None
    pipeline_id: int
    web_url: Optional[str] = None
    file_path: str
    file_size: int
    saved_at: str


class EpicAuthor(BaseModel):
    id: int
    username: str
    name: str = ""


class Epic(BaseModel):
    """Group epic (GitLab Premium/Ultimate)."""

    id: int
    iid: int
    group_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    state: str
    web_url: Optional[str] = None
    author: Optional[EpicAuthor] = None
    start_date: Optional[str] = None
    due_date: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Epic":
        author = data.get("author")
        return cls(
            id=data["id"],
            iid=data["iid"],
            group_id=data.get("group_id"),
            title=data.get("title", ""),
            description=data.get("description"),
            state=data.get("state", ""),
            web_url=data.get("web_url"),
            author=EpicAuthor(
                id=author["id"],
                username=author.get("username", ""),
                name=author.get("name", ""),
            ) if author else None,
            start_date=data.get("start_date"),
            due_date=data.get("due_date"),
            labels=list(data.get("labels") or []),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class ProjectInfo(BaseModel):
    """Project identity plus its description and topics."""

    id: int
    name: str
    path: str
    path_with_namespace: Optional[str] = None
    description: str = ""
    topics: List[str] = Field(default_factory=list)
    web_url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ProjectInfo":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            path=data.get("path", ""),
            path_with_namespace=data.get("path_with_namespace"),
            description=data.get("description") or "",
            topics=list(data.get("topics") or data.get("tag_list") or []),
            web_url=data.get("web_url"),
        )


class GroupInfo(BaseModel):
    id: int
    name: str
    full_path: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "GroupInfo":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            full_path=data.get("full_path", ""),
        )


class CurrentUser(BaseModel):
    id: int
    username: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CurrentUser":
        return cls(id=data["id"], username=data.get("username", ""))
