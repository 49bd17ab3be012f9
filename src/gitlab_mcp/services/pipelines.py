"""Pipeline and job resolution.

Every operation here narrows an optional pipeline reference down to one
concrete pipeline: an explicit id wins, otherwise the most recently updated
pipeline (optionally on a given ref) is used. Nothing is retried at this
level; GitLab failures are wrapped with the operation's context.
"""

import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from ..gitlab.base import RemoteResourceClient, ResourceRef
from ..gitlab.exceptions import GitLabError
from ..gitlab.models import DownloadJobTraceResult, JobLog, Pipeline, PipelineJob
from ..gitlab.pagination import MAX_PER_PAGE, page_params
from .errors import (
    InvalidJobIDError,
    InvalidOutputPathError,
    JobNotFoundInPipelineError,
    NoPipelinesFoundError,
    RemoteCallError,
    TraceRetrievalError,
    TraceWriteError,
)
from .projects import resolve_project

logger = logging.getLogger(__name__)

SYSTEM_DIRECTORIES = ("/etc", "/usr", "/bin", "/sbin", "/boot", "/sys", "/proc")


@dataclass
class ListPipelineJobsOptions:
    """Filters for a pipeline job listing.

    ``scope`` is sent to GitLab as ``scope[]``; ``stage`` is matched locally
    because the jobs endpoint cannot filter by stage.
    """

    ref: Optional[str] = None
    scope: List[str] = field(default_factory=list)
    stage: Optional[str] = None
    limit: Optional[int] = None


def default_trace_path(job_id: int) -> str:
    return f"./job_{job_id}_trace.log"


def validate_output_path(output_path: str) -> str:
    """Return the absolute, normalized form of ``output_path``.

    Raises InvalidOutputPathError for paths containing ``..`` or pointing
    into a system directory.
    """
    if ".." in output_path:
        raise InvalidOutputPathError("invalid output path: path contains '..'")

    clean_path = os.path.normpath(os.path.abspath(output_path))
    for system_dir in SYSTEM_DIRECTORIES:
        if clean_path == system_dir or clean_path.startswith(system_dir + os.sep):
            raise InvalidOutputPathError(
                f"invalid output path: cannot write to system directory {system_dir}"
            )
    return clean_path


def write_file_atomically(path: str, content: bytes) -> int:
    """Write ``content`` to ``path`` through a temp file in the same directory.

    Parent directories are created. Returns the number of bytes written.
    """
    parent = os.path.dirname(path)
    os.makedirs(parent, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(prefix=".job_trace_", suffix=".tmp", dir=parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
    return len(content)


class PipelineJobResolver:
    """Resolves pipelines and jobs of one project."""

    def __init__(self, client: RemoteResourceClient):
        self.client = client

    async def _project_id(self, project: ResourceRef) -> int:
        """Numeric ids pass through; namespace paths are resolved to their project id."""
        if isinstance(project, int):
            return project
        return (await resolve_project(self.client, project)).id

    async def resolve_latest_pipeline(
        self, project: ResourceRef, ref: Optional[str] = None
    ) -> Pipeline:
        """Return the most recently updated pipeline, optionally restricted to ``ref``."""
        project = await self._project_id(project)
        logger.debug("Resolving latest pipeline for project %s (ref=%s)", project, ref)
        try:
            pipelines = await self.client.list_project_pipelines(
                project,
                ref=ref or None,
                order_by="updated_at",
                sort="desc",
                per_page=1,
                page=1,
            )
        except GitLabError as e:
            logger.error("Failed to list pipelines for project %s: %s", project, e)
            raise RemoteCallError(f"failed to list pipelines for project {project}", e) from e

        if not pipelines:
            logger.info("No pipelines found for project %s (ref=%s)", project, ref)
            raise NoPipelinesFoundError(str(project), ref)

        pipeline = pipelines[0]
        logger.debug("Latest pipeline for project %s is %d (%s)", project, pipeline.id, pipeline.status)
        return pipeline

    async def _pipeline_id(
        self, project: ResourceRef, pipeline_id: Optional[int], ref: Optional[str]
    ) -> int:
        if pipeline_id:
            return pipeline_id
        return (await self.resolve_latest_pipeline(project, ref)).id

    async def _fetch_jobs(
        self,
        project: ResourceRef,
        pipeline_id: int,
        scope: Optional[List[str]] = None,
        per_page: int = MAX_PER_PAGE,
    ) -> List[PipelineJob]:
        try:
            return await self.client.list_pipeline_jobs(
                project, pipeline_id, scope=scope or None, per_page=per_page, page=1
            )
        except GitLabError as e:
            logger.error("Failed to list jobs for pipeline %d: %s", pipeline_id, e)
            raise RemoteCallError(f"failed to list jobs for pipeline {pipeline_id}", e) from e

    async def list_jobs_for_pipeline(
        self,
        project: ResourceRef,
        pipeline_id: Optional[int] = None,
        options: Optional[ListPipelineJobsOptions] = None,
    ) -> List[PipelineJob]:
        """List jobs of ``pipeline_id``, or of the latest pipeline when it is None."""
        opts = options or ListPipelineJobsOptions()
        project = await self._project_id(project)
        resolved_id = await self._pipeline_id(project, pipeline_id, opts.ref)

        jobs = await self._fetch_jobs(
            project, resolved_id, opts.scope, page_params(opts.limit)["per_page"]
        )
        if opts.stage:
            jobs = [job for job in jobs if job.stage == opts.stage]

        logger.info(
            "Retrieved %d jobs for pipeline %d (scope=%s, stage=%s)",
            len(jobs), resolved_id, opts.scope, opts.stage,
        )
        return jobs

    async def _find_job(
        self,
        project: int,
        job_id: int,
        pipeline_id: Optional[int],
        ref: Optional[str],
    ) -> PipelineJob:
        resolved_id = await self._pipeline_id(project, pipeline_id, ref)
        jobs = await self._fetch_jobs(project, resolved_id)

        for job in jobs:
            if job.id == job_id:
                return job.model_copy(update={"pipeline_id": resolved_id})

        logger.error("Job %d not found in pipeline %d", job_id, resolved_id)
        raise JobNotFoundInPipelineError(job_id, resolved_id)

    async def _fetch_trace(self, project: ResourceRef, job_id: int) -> bytes:
        try:
            return await self.client.get_job_trace(project, job_id)
        except GitLabError as e:
            logger.error("Failed to get trace for job %d: %s", job_id, e)
            raise TraceRetrievalError(job_id, e) from e

    async def get_job_log(
        self,
        project: ResourceRef,
        job_id: int,
        pipeline_id: Optional[int] = None,
        ref: Optional[str] = None,
    ) -> JobLog:
        """Return a job's trace after checking the job belongs to the resolved pipeline."""
        if job_id <= 0:
            logger.error("Invalid job ID: %d", job_id)
            raise InvalidJobIDError(job_id)
        project = await self._project_id(project)
        job = await self._find_job(project, job_id, pipeline_id, ref)
        trace = await self._fetch_trace(project, job_id)

        logger.info("Retrieved log for job %d (%d bytes)", job_id, len(trace))
        return JobLog(
            job_id=job.id,
            job_name=job.name,
            status=job.status,
            stage=job.stage,
            ref=job.ref,
            pipeline_id=job.pipeline_id,
            web_url=job.web_url,
            log_content=trace.decode("utf-8", errors="replace"),
            log_size=len(trace),
        )

    async def download_job_trace(
        self,
        project: ResourceRef,
        job_id: int,
        pipeline_id: Optional[int] = None,
        ref: Optional[str] = None,
        output_path: Optional[str] = None,
    ) -> DownloadJobTraceResult:
        """Save a job's trace to ``output_path`` (default ``./job_<id>_trace.log``)."""
        if job_id <= 0:
            logger.error("Invalid job ID: %d", job_id)
            raise InvalidJobIDError(job_id)
        target = validate_output_path(output_path or default_trace_path(job_id))

        project = await self._project_id(project)
        job = await self._find_job(project, job_id, pipeline_id, ref)
        trace = await self._fetch_trace(project, job_id)

        try:
            written = await asyncio.to_thread(write_file_atomically, target, trace)
        except OSError as e:
            logger.error("Failed to write trace for job %d to %s: %s", job_id, target, e)
            raise TraceWriteError(target, e) from e

        logger.info("Saved trace for job %d to %s (%d bytes)", job_id, target, written)
        return DownloadJobTraceResult(
            job_id=job.id,
            job_name=job.name,
            status=job.status,
            stage=job.stage,
            ref=job.ref,
            pipeline_id=job.pipeline_id,
            web_url=job.web_url,
            file_path=target,
            file_size=written,
            saved_at=datetime.now(timezone.utc).isoformat(),
        )
