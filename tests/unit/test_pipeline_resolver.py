"""Tests for PipelineJobResolver.

Verifies:
- Latest pipeline query shape (updated_at desc, page size 1, optional ref).
- No pipelines -> NoPipelinesFoundError.
- Server-side status scope and client-side stage filtering.
- Job log cross-check against the resolved pipeline.
- Trace download path validation and atomic write.
"""

import os

import pytest

from conftest import make_job, make_pipeline
from gitlab_mcp.gitlab.exceptions import GitLabAPIError, GitLabNotFoundError, GitLabTransportError
from gitlab_mcp.gitlab.models import JobRunner, PipelineJob
from gitlab_mcp.services.errors import (
    InvalidJobIDError,
    InvalidOutputPathError,
    JobNotFoundInPipelineError,
    NoPipelinesFoundError,
    ProjectNotFoundError,
    RemoteCallError,
    ResourceNotFoundError,
    TraceRetrievalError,
    ValidationFailedError,
)
from gitlab_mcp.services.pipelines import (
    ListPipelineJobsOptions,
    PipelineJobResolver,
    validate_output_path,
    write_file_atomically,
)

pytestmark = pytest.mark.asyncio

PROJECT_ID = 42


# ---------------------------------------------------------------------------
# resolve_latest_pipeline
# ---------------------------------------------------------------------------

class TestResolveLatestPipeline:

    async def test_returns_first_item(self, mock_client):
        mock_client.list_project_pipelines.return_value = [make_pipeline(77)]

        pipeline = await PipelineJobResolver(mock_client).resolve_latest_pipeline(PROJECT_ID)

        assert pipeline.id == 77
        mock_client.list_project_pipelines.assert_awaited_once_with(
            PROJECT_ID, ref=None, order_by="updated_at", sort="desc", per_page=1, page=1
        )

    async def test_ref_filter_forwarded(self, mock_client):
        await PipelineJobResolver(mock_client).resolve_latest_pipeline(PROJECT_ID, "release")

        assert mock_client.list_project_pipelines.await_args.kwargs["ref"] == "release"

    async def test_no_pipelines(self, mock_client):
        mock_client.list_project_pipelines.return_value = []

        with pytest.raises(NoPipelinesFoundError) as exc_info:
            await PipelineJobResolver(mock_client).resolve_latest_pipeline(PROJECT_ID, "feature")

        assert exc_info.value.ref == "feature"
        assert "no pipelines found" in str(exc_info.value)
        assert not isinstance(exc_info.value, ResourceNotFoundError)

    async def test_transport_error_wrapped_not_retried(self, mock_client):
        mock_client.list_project_pipelines.side_effect = GitLabTransportError("down")

        with pytest.raises(RemoteCallError):
            await PipelineJobResolver(mock_client).resolve_latest_pipeline(PROJECT_ID)

        assert mock_client.list_project_pipelines.await_count == 1


# ---------------------------------------------------------------------------
# list_jobs_for_pipeline
# ---------------------------------------------------------------------------

class TestListJobsForPipeline:

    async def test_explicit_pipeline_skips_latest_lookup(self, mock_client):
        mock_client.list_pipeline_jobs.return_value = [make_job(1)]

        jobs = await PipelineJobResolver(mock_client).list_jobs_for_pipeline(PROJECT_ID, 55)

        assert [j.id for j in jobs] == [1]
        mock_client.list_project_pipelines.assert_not_awaited()
        assert mock_client.list_pipeline_jobs.await_args.args == (PROJECT_ID, 55)

    async def test_latest_pipeline_used_when_absent(self, mock_client):
        mock_client.list_project_pipelines.return_value = [make_pipeline(88)]

        await PipelineJobResolver(mock_client).list_jobs_for_pipeline(
            PROJECT_ID, None, ListPipelineJobsOptions(ref="main")
        )

        assert mock_client.list_project_pipelines.await_args.kwargs["ref"] == "main"
        assert mock_client.list_pipeline_jobs.await_args.args == (PROJECT_ID, 88)

    async def test_stage_filter_applied_locally(self, mock_client):
        """Only build-stage jobs are returned, in their original order."""
        mock_client.list_pipeline_jobs.return_value = [
            make_job(1, stage="build"),
            make_job(2, stage="test"),
            make_job(3, stage="build"),
            make_job(4, stage="test"),
        ]

        jobs = await PipelineJobResolver(mock_client).list_jobs_for_pipeline(
            PROJECT_ID, 42, ListPipelineJobsOptions(stage="build")
        )

        assert [j.id for j in jobs] == [1, 3]
        assert "stage" not in mock_client.list_pipeline_jobs.await_args.kwargs

    async def test_stage_match_is_exact(self, mock_client):
        mock_client.list_pipeline_jobs.return_value = [
            make_job(1, stage="build"),
            make_job(2, stage="Build"),
            make_job(3, stage="build-docs"),
        ]

        jobs = await PipelineJobResolver(mock_client).list_jobs_for_pipeline(
            PROJECT_ID, 42, ListPipelineJobsOptions(stage="build")
        )

        assert [j.id for j in jobs] == [1]

    async def test_status_scope_sent_to_server(self, mock_client):
        await PipelineJobResolver(mock_client).list_jobs_for_pipeline(
            PROJECT_ID, 42, ListPipelineJobsOptions(scope=["failed", "canceled"])
        )

        assert mock_client.list_pipeline_jobs.await_args.kwargs["scope"] == ["failed", "canceled"]

    async def test_empty_scope_not_sent(self, mock_client):
        await PipelineJobResolver(mock_client).list_jobs_for_pipeline(PROJECT_ID, 42)

        assert mock_client.list_pipeline_jobs.await_args.kwargs["scope"] is None

    async def test_empty_after_filter_is_success(self, mock_client):
        mock_client.list_pipeline_jobs.return_value = [make_job(1, stage="test")]

        jobs = await PipelineJobResolver(mock_client).list_jobs_for_pipeline(
            PROJECT_ID, 42, ListPipelineJobsOptions(stage="deploy")
        )

        assert jobs == []

    async def test_no_pipelines_propagates(self, mock_client):
        mock_client.list_project_pipelines.return_value = []

        with pytest.raises(NoPipelinesFoundError):
            await PipelineJobResolver(mock_client).list_jobs_for_pipeline(PROJECT_ID)

        mock_client.list_pipeline_jobs.assert_not_awaited()


class TestJobRunnerMapping:
    """A zero or missing runner id is reported as no runner."""

    async def test_runner_zero_id_is_none(self):
        job = PipelineJob.from_api(
            {"id": 1, "name": "build", "stage": "build", "status": "pending",
             "runner": {"id": 0, "description": "", "active": False}}
        )
        assert job.runner is None

    async def test_runner_missing_is_none(self):
        job = PipelineJob.from_api({"id": 1, "name": "b", "stage": "build", "status": "created"})
        assert job.runner is None

    async def test_runner_present(self):
        job = PipelineJob.from_api(
            {"id": 1, "name": "b", "stage": "build", "status": "success",
             "runner": {"id": 12, "description": "shared-runner", "active": True}}
        )
        assert job.runner == JobRunner(id=12, description="shared-runner", active=True)


# ---------------------------------------------------------------------------
# get_job_log
# ---------------------------------------------------------------------------

class TestGetJobLog:

    async def test_job_not_in_explicit_pipeline(self, mock_client):
        """Job 9999 is not among pipeline 42's jobs [1001, 1002]."""
        mock_client.list_pipeline_jobs.return_value = [make_job(1001), make_job(1002)]

        with pytest.raises(JobNotFoundInPipelineError) as exc_info:
            await PipelineJobResolver(mock_client).get_job_log(PROJECT_ID, 9999, pipeline_id=42)

        assert exc_info.value.job_id == 9999
        assert exc_info.value.pipeline_id == 42
        mock_client.get_job_trace.assert_not_awaited()

    async def test_job_from_another_pipeline_rejected(self, mock_client):
        """A job id that exists elsewhere in the project still fails the cross-check."""

        async def _jobs(project, pipeline_id, **kwargs):
            return {41: [make_job(5000)], 42: [make_job(1001)]}[pipeline_id]

        mock_client.list_pipeline_jobs.side_effect = _jobs

        with pytest.raises(JobNotFoundInPipelineError):
            await PipelineJobResolver(mock_client).get_job_log(PROJECT_ID, 5000, pipeline_id=42)

    @pytest.mark.parametrize("job_id", [0, -1])
    async def test_invalid_job_id_fails_before_remote_calls(self, mock_client, job_id):
        with pytest.raises(InvalidJobIDError) as exc_info:
            await PipelineJobResolver(mock_client).get_job_log(PROJECT_ID, job_id)

        assert isinstance(exc_info.value, ValidationFailedError)
        mock_client.list_project_pipelines.assert_not_awaited()
        mock_client.list_pipeline_jobs.assert_not_awaited()
        mock_client.get_job_trace.assert_not_awaited()

    async def test_log_composed_with_local_size(self, mock_client):
        trace = "Running with gitlab-runner\nJob succeeded ✓\n".encode("utf-8")
        mock_client.list_pipeline_jobs.return_value = [make_job(1001, stage="test", name="unit")]
        mock_client.get_job_trace.return_value = trace

        log = await PipelineJobResolver(mock_client).get_job_log(PROJECT_ID, 1001, pipeline_id=42)

        assert log.job_id == 1001
        assert log.job_name == "unit"
        assert log.stage == "test"
        assert log.pipeline_id == 42
        assert log.log_content == trace.decode("utf-8")
        assert log.log_size == len(trace)
        assert log.log_size != len(log.log_content)

    async def test_latest_pipeline_with_ref(self, mock_client):
        mock_client.list_project_pipelines.return_value = [make_pipeline(64, ref="develop")]
        mock_client.list_pipeline_jobs.return_value = [make_job(7)]
        mock_client.get_job_trace.return_value = b"ok"

        log = await PipelineJobResolver(mock_client).get_job_log(PROJECT_ID, 7, ref="develop")

        assert log.pipeline_id == 64
        assert mock_client.list_project_pipelines.await_args.kwargs["ref"] == "develop"
        assert mock_client.list_pipeline_jobs.await_args.kwargs["per_page"] == 100

    async def test_trace_failure_wrapped_with_job_id(self, mock_client):
        mock_client.list_pipeline_jobs.return_value = [make_job(1001)]
        mock_client.get_job_trace.side_effect = GitLabAPIError("API error: HTTP 500", status_code=500)

        with pytest.raises(TraceRetrievalError) as exc_info:
            await PipelineJobResolver(mock_client).get_job_log(PROJECT_ID, 1001, pipeline_id=42)

        assert exc_info.value.job_id == 1001
        assert "1001" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, GitLabAPIError)


# ---------------------------------------------------------------------------
# download_job_trace
# ---------------------------------------------------------------------------

class TestDownloadJobTrace:

    async def test_writes_trace_to_file(self, mock_client, tmp_path):
        mock_client.list_pipeline_jobs.return_value = [make_job(1001)]
        mock_client.get_job_trace.return_value = b"line one\nline two\n"
        target = tmp_path / "logs" / "nested" / "trace.log"

        result = await PipelineJobResolver(mock_client).download_job_trace(
            PROJECT_ID, 1001, pipeline_id=42, output_path=str(target)
        )

        assert target.read_bytes() == b"line one\nline two\n"
        assert result.file_path == str(target)
        assert result.file_size == 18
        assert result.pipeline_id == 42
        assert result.saved_at.endswith("+00:00")
        assert not [p for p in target.parent.iterdir() if p.name.endswith(".tmp")]

    async def test_default_output_path(self, mock_client, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        mock_client.list_pipeline_jobs.return_value = [make_job(1001)]
        mock_client.get_job_trace.return_value = b"x"

        result = await PipelineJobResolver(mock_client).download_job_trace(
            PROJECT_ID, 1001, pipeline_id=42
        )

        assert os.path.realpath(result.file_path) == os.path.realpath(tmp_path / "job_1001_trace.log")

    @pytest.mark.parametrize("path", ["../escape.log", "logs/../../x.log", "/etc/passwd", "/proc/self/x"])
    async def test_rejected_paths_fail_before_remote_calls(self, mock_client, path):
        with pytest.raises(InvalidOutputPathError):
            await PipelineJobResolver(mock_client).download_job_trace(
                PROJECT_ID, 1001, pipeline_id=42, output_path=path
            )

        mock_client.list_pipeline_jobs.assert_not_awaited()

    async def test_job_not_in_pipeline(self, mock_client, tmp_path):
        mock_client.list_pipeline_jobs.return_value = [make_job(1)]

        with pytest.raises(JobNotFoundInPipelineError):
            await PipelineJobResolver(mock_client).download_job_trace(
                PROJECT_ID, 2, pipeline_id=42, output_path=str(tmp_path / "t.log")
            )

        assert not (tmp_path / "t.log").exists()


class TestProjectReference:
    """Namespace paths are resolved after argument checks and before GitLab reads."""

    async def test_path_resolved_to_project_id(self, mock_client):
        mock_client.list_pipeline_jobs.return_value = [make_job(1001)]

        jobs = await PipelineJobResolver(mock_client).list_jobs_for_pipeline(
            "myorg/team/project", 42
        )

        assert [j.id for j in jobs] == [1001]
        mock_client.get_project.assert_awaited_once_with("myorg/team/project")
        assert mock_client.list_pipeline_jobs.await_args.args[:2] == (PROJECT_ID, 42)

    async def test_unknown_project_path(self, mock_client):
        mock_client.get_project.side_effect = GitLabNotFoundError("Not found: HTTP 404")

        with pytest.raises(ProjectNotFoundError):
            await PipelineJobResolver(mock_client).resolve_latest_pipeline("myorg/missing")

        mock_client.list_project_pipelines.assert_not_awaited()

    async def test_invalid_job_id_checked_before_path_resolution(self, mock_client):
        with pytest.raises(InvalidJobIDError):
            await PipelineJobResolver(mock_client).get_job_log("myorg/team/project", 0)

        mock_client.get_project.assert_not_awaited()

    async def test_output_path_checked_before_path_resolution(self, mock_client):
        with pytest.raises(InvalidOutputPathError):
            await PipelineJobResolver(mock_client).download_job_trace(
                "myorg/team/project", 1001, output_path="../escape.log"
            )

        mock_client.get_project.assert_not_awaited()


class TestOutputPathHelpers:

    async def test_validate_output_path_absolutizes(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        resolved = validate_output_path("out/trace.log")
        assert os.path.realpath(resolved) == os.path.realpath(tmp_path / "out" / "trace.log")

    async def test_system_dir_prefix_only_matches_whole_segment(self, tmp_path):
        # "/etcetera" is not inside "/etc"
        assert validate_output_path("/etcetera/trace.log") == "/etcetera/trace.log"

    async def test_write_file_atomically_replaces_existing(self, tmp_path):
        target = tmp_path / "trace.log"
        target.write_bytes(b"old")

        written = write_file_atomically(str(target), b"new content")

        assert written == 11
        assert target.read_bytes() == b"new content"
