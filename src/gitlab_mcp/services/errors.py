"""Domain error kinds raised by the service layer.

Callers classify failures with isinstance checks; the message text is for
humans only. Transport failures are wrapped in RemoteCallError with the
original exception chained as __cause__.
"""

from typing import Iterable, List, Optional


class ServiceError(Exception):
    """Base exception for all service-layer errors."""

    pass


# --- Not found -------------------------------------------------------------

class ResourceNotFoundError(ServiceError):
    """A project, group or job does not exist or is not visible to the token."""

    pass


class ProjectNotFoundError(ResourceNotFoundError):
    def __init__(self, project_path: str):
        self.project_path = project_path
        super().__init__(f"project not found: {project_path}")


class GroupNotFoundError(ResourceNotFoundError):
    def __init__(self, group_path: str):
        self.group_path = group_path
        super().__init__(f"group not found: {group_path}")


class JobNotFoundInPipelineError(ResourceNotFoundError):
    """The job exists nowhere in the resolved pipeline's job list."""

    def __init__(self, job_id: int, pipeline_id: int):
        self.job_id = job_id
        self.pipeline_id = pipeline_id
        super().__init__(f"job not found in pipeline: job {job_id} is not part of pipeline {pipeline_id}")


# --- No results ------------------------------------------------------------

class NoPipelinesFoundError(ServiceError):
    """The project exists but has no pipelines matching the filter."""

    def __init__(self, project: str, ref: Optional[str] = None):
        self.project = project
        self.ref = ref
        detail = f" for ref '{ref}'" if ref else ""
        super().__init__(f"no pipelines found in project {project}{detail}")


# --- Validation ------------------------------------------------------------

class ValidationFailedError(ServiceError):
    """Input rejected before (or instead of) a remote call."""

    pass


class InvalidArgumentError(ValidationFailedError):
    pass


class InvalidJobIDError(ValidationFailedError):
    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f"invalid job ID: {job_id} (must be a positive integer)")


class InvalidOutputPathError(ValidationFailedError):
    pass


class LabelValidationError(ValidationFailedError):
    """Requested labels that exist nowhere in the project hierarchy."""

    def __init__(self, scope: str, missing: Iterable[str], available: Iterable[str]):
        self.scope = scope
        self.missing: List[str] = list(missing)
        self.available: List[str] = sorted(available, key=str.lower)
        super().__init__(self._format())

    def _format(self) -> str:
        lines = [f"The following labels do not exist in '{self.scope}' or its parent groups:"]
        lines.extend(f"- '{label}'" for label in self.missing)
        if self.available:
            lines.append("")
            lines.append("Available labels:")
            lines.append("- " + ", ".join(self.available))
        else:
            lines.append("")
            lines.append("No labels are defined in this project or its parent groups.")
        lines.append("")
        lines.append("To disable label validation, set GITLAB_VALIDATE_LABELS=false")
        return "label validation failed: " + "\n".join(lines)


# --- Tier restriction ------------------------------------------------------

class TierRestrictionError(ServiceError):
    """A 403 on a feature gated behind GitLab Premium/Ultimate."""

    def __init__(self, feature: str, detail: str = ""):
        self.feature = feature
        message = f"{feature} require GitLab Premium or Ultimate tier"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# --- Trace handling --------------------------------------------------------

class TraceRetrievalError(ServiceError):
    def __init__(self, job_id: int, cause: BaseException):
        self.job_id = job_id
        super().__init__(f"failed to get trace for job {job_id}: {cause}")


class TraceWriteError(ServiceError):
    def __init__(self, path: str, cause: BaseException):
        self.path = path
        super().__init__(f"failed to write trace file {path}: {cause}")


# --- Transport / unclassified ----------------------------------------------

class RemoteCallError(ServiceError):
    """Any other remote failure, wrapped with the operation that issued it."""

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        super().__init__(f"{operation}: {cause}")
