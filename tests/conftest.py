"""Test configuration and fixtures."""

import os
from typing import Optional
from unittest.mock import AsyncMock

import pytest

# Set test environment variables BEFORE importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("GITLAB_TOKEN", "test-token")

from gitlab_mcp.config import Settings, get_settings
from gitlab_mcp.gitlab.client import GitLabClient
from gitlab_mcp.gitlab.models import (
    CurrentUser,
    GroupInfo,
    Issue,
    JobRunner,
    Label,
    Pipeline,
    PipelineJob,
    ProjectInfo,
)


# ---------------------------------------------------------------------------
# Entity factories
# ---------------------------------------------------------------------------

def make_project(project_id: int = 42, path: str = "myorg/team/project", **kwargs) -> ProjectInfo:
    return ProjectInfo(
        id=project_id,
        name=kwargs.pop("name", path.rsplit("/", 1)[-1]),
        path=path.rsplit("/", 1)[-1],
        path_with_namespace=path,
        **kwargs,
    )


def make_issue(issue_id: int, project_id: int = 42, iid: Optional[int] = None, **kwargs) -> Issue:
    return Issue(
        id=issue_id,
        iid=iid if iid is not None else issue_id,
        project_id=project_id,
        title=kwargs.pop("title", f"Issue {issue_id}"),
        state=kwargs.pop("state", "opened"),
        **kwargs,
    )


def make_label(name: str, label_id: int = 1) -> Label:
    return Label(id=label_id, name=name, color="#FF0000")


def make_pipeline(pipeline_id: int = 42, ref: str = "main", status: str = "success") -> Pipeline:
    return Pipeline(
        id=pipeline_id,
        iid=pipeline_id,
        project_id=42,
        status=status,
        ref=ref,
        sha="abc123",
        web_url=f"https://gitlab.com/myorg/team/project/-/pipelines/{pipeline_id}",
        updated_at="2026-01-15T10:00:00Z",
    )


def make_job(
    job_id: int,
    stage: str = "build",
    status: str = "success",
    name: Optional[str] = None,
    runner: Optional[JobRunner] = None,
) -> PipelineJob:
    return PipelineJob(
        id=job_id,
        name=name or f"job-{job_id}",
        stage=stage,
        status=status,
        ref="main",
        web_url=f"https://gitlab.com/myorg/team/project/-/jobs/{job_id}",
        runner=runner,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gitlab_token="test-token",
        gitlab_uri="https://gitlab.example.com/",
        gitlab_validate_labels=True,
        gitlab_validate_labels_ancestors=True,
        gitlab_max_retries=0,
    )


@pytest.fixture
def mock_client() -> AsyncMock:
    """GitLab client double with a resolvable default project and group."""
    client = AsyncMock(spec=GitLabClient)
    client.current_user.return_value = CurrentUser(id=1, username="tester")
    client.get_project.return_value = make_project()
    client.get_group.return_value = GroupInfo(id=7, name="team", full_path="myorg/team")
    client.list_project_issues.return_value = []
    client.list_group_issues.return_value = []
    client.list_project_labels.return_value = []
    client.list_group_labels.return_value = []
    client.list_project_pipelines.return_value = [make_pipeline()]
    client.list_pipeline_jobs.return_value = []
    client.get_job_trace.return_value = b""
    client.list_group_epics.return_value = []
    return client
