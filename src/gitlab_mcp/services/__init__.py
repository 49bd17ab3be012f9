"""Resolution and aggregation on top of the GitLab client."""

from .errors import (
    GroupNotFoundError,
    InvalidArgumentError,
    InvalidJobIDError,
    InvalidOutputPathError,
    JobNotFoundInPipelineError,
    LabelValidationError,
    NoPipelinesFoundError,
    ProjectNotFoundError,
    RemoteCallError,
    ResourceNotFoundError,
    ServiceError,
    TierRestrictionError,
    TraceRetrievalError,
    TraceWriteError,
    ValidationFailedError,
)
from .issues import IssueAggregator, ListIssuesOptions
from .labels import LabelHierarchyValidator, ListLabelsOptions
from .pipelines import ListPipelineJobsOptions, PipelineJobResolver

__all__ = [
    "GroupNotFoundError",
    "InvalidArgumentError",
    "InvalidJobIDError",
    "InvalidOutputPathError",
    "IssueAggregator",
    "JobNotFoundInPipelineError",
    "LabelHierarchyValidator",
    "LabelValidationError",
    "ListIssuesOptions",
    "ListLabelsOptions",
    "ListPipelineJobsOptions",
    "NoPipelinesFoundError",
    "PipelineJobResolver",
    "ProjectNotFoundError",
    "RemoteCallError",
    "ResourceNotFoundError",
    "ServiceError",
    "TierRestrictionError",
    "TraceRetrievalError",
    "TraceWriteError",
    "ValidationFailedError",
]
