"""GitLab MCP tool definitions and dispatch.

Each tool extracts and type-checks its arguments, calls one service
operation and returns the result as indented JSON text. Service and
GitLab errors propagate to the MCP server, which turns them into error
results.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp import types
from pydantic import BaseModel

from ..config import Settings
from ..gitlab.base import RemoteResourceClient
from ..services.epics import ListEpicsOptions, list_group_epics
from ..services.errors import InvalidArgumentError
from ..services.issues import IssueAggregator, ListIssuesOptions, parse_label_list
from ..services.labels import LabelHierarchyValidator, ListLabelsOptions, list_labels
from ..services.pipelines import ListPipelineJobsOptions, PipelineJobResolver
from ..services.projects import get_project_description, get_project_topics

logger = logging.getLogger(__name__)

JOB_STATUSES = [
    "created",
    "pending",
    "running",
    "failed",
    "success",
    "canceled",
    "skipped",
    "waiting_for_resource",
    "manual",
]

# ----------------------------------------------------------------------
# Argument extraction
# ----------------------------------------------------------------------


def require_str(arguments: Dict[str, Any], name: str) -> str:
    value = arguments.get(name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} must be a non-empty string")
    return value.strip()


def optional_str(arguments: Dict[str, Any], name: str) -> Optional[str]:
    value = arguments.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string")
    return value.strip() or None


def optional_int(arguments: Dict[str, Any], name: str) -> Optional[int]:
    """Accept ints and integral floats (JSON numbers); reject bools and strings."""
    value = arguments.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"{name} must be a number")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidArgumentError(f"{name} must be an integer")
        value = int(value)
    return value


def require_int(arguments: Dict[str, Any], name: str) -> int:
    value = optional_int(arguments, name)
    if value is None:
        raise InvalidArgumentError(f"{name} is required")
    return value


def optional_bool(arguments: Dict[str, Any], name: str, default: bool) -> bool:
    value = arguments.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be a boolean")
    return value


def string_list(arguments: Dict[str, Any], name: str) -> List[str]:
    """Accept either a JSON array of strings or a comma-separated string."""
    value = arguments.get(name)
    if value is None:
        return []
    if isinstance(value, str):
        return parse_label_list(value)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item.strip() for item in value if item.strip()]
    raise InvalidArgumentError(f"{name} must be a string or a list of strings")


def _to_json(result: Any) -> str:
    if isinstance(result, BaseModel):
        result = result.model_dump()
    elif isinstance(result, list):
        result = [item.model_dump() if isinstance(item, BaseModel) else item for item in result]
    return json.dumps(result, indent=2)


# ----------------------------------------------------------------------
# Schemas
# ----------------------------------------------------------------------

_PROJECT_PATH = {
    "type": "string",
    "description": "Full project path with namespace (e.g. 'group/subgroup/project')",
}
_LIMIT = {
    "type": "integer",
    "default": 100,
    "description": "Maximum number of results (capped at 100)",
}
_PIPELINE_ID = {
    "type": "integer",
    "description": "Pipeline ID; defaults to the most recently updated pipeline",
}
_REF = {
    "type": "string",
    "description": "Branch or tag used to pick the latest pipeline when pipeline_id is omitted",
}
_JOB_ID = {"type": "integer", "description": "Job ID (positive)"}


def _object(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


class GitLabTools:
    """The tool surface of the server, bound to one GitLab client."""

    def __init__(self, client: RemoteResourceClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.issues = IssueAggregator(client)
        self.labels = LabelHierarchyValidator(
            client,
            enabled=settings.gitlab_validate_labels,
            include_ancestors=settings.gitlab_validate_labels_ancestors,
        )
        self.pipelines = PipelineJobResolver(client)
        self._dispatch: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "list_issues": self._list_issues,
            "list_labels": self._list_labels,
            "validate_labels": self._validate_labels,
            "list_epics": self._list_epics,
            "get_project_description": self._get_project_description,
            "get_project_topics": self._get_project_topics,
            "get_latest_pipeline": self._get_latest_pipeline,
            "list_pipeline_jobs": self._list_pipeline_jobs,
            "get_job_log": self._get_job_log,
            "download_job_trace": self._download_job_trace,
        }

    @property
    def names(self) -> List[str]:
        return list(self._dispatch)

    def definitions(self) -> List[types.Tool]:
        return [
            types.Tool(
                name="list_issues",
                description=(
                    "List issues for a GitLab project. By default also includes issues "
                    "from the parent group's other projects"
                ),
                inputSchema=_object(
                    {
                        "project_path": _PROJECT_PATH,
                        "state": {
                            "type": "string",
                            "enum": ["opened", "closed", "all"],
                            "default": "opened",
                            "description": "Filter by issue state",
                        },
                        "labels": {
                            "type": "string",
                            "description": "Comma-separated label names (project issues only)",
                        },
                        "limit": _LIMIT,
                        "include_group_issues": {
                            "type": "boolean",
                            "default": True,
                            "description": "Merge in issues from the parent group",
                        },
                    },
                    ["project_path"],
                ),
            ),
            types.Tool(
                name="list_labels",
                description="List labels available in a GitLab project",
                inputSchema=_object(
                    {
                        "project_path": _PROJECT_PATH,
                        "with_counts": {
                            "type": "boolean",
                            "default": False,
                            "description": "Include issue and merge request counts",
                        },
                        "include_ancestor_groups": {
                            "type": "boolean",
                            "default": True,
                            "description": "Include labels inherited from ancestor groups",
                        },
                        "search": {"type": "string", "description": "Filter labels by name"},
                        "limit": _LIMIT,
                    },
                    ["project_path"],
                ),
            ),
            types.Tool(
                name="validate_labels",
                description=(
                    "Check that label names exist in a project or any of its parent "
                    "groups (case-insensitive)"
                ),
                inputSchema=_object(
                    {
                        "project_path": _PROJECT_PATH,
                        "labels": {
                            "type": ["string", "array"],
                            "items": {"type": "string"},
                            "description": "Label names as an array or comma-separated string",
                        },
                    },
                    ["project_path", "labels"],
                ),
            ),
            types.Tool(
                name="list_epics",
                description="List epics for a GitLab group (requires Premium or Ultimate tier)",
                inputSchema=_object(
                    {
                        "group_path": {
                            "type": "string",
                            "description": "Full group path (e.g. 'myorg/team')",
                        },
                        "state": {
                            "type": "string",
                            "enum": ["opened", "closed", "all"],
                            "default": "opened",
                            "description": "Filter by epic state",
                        },
                        "limit": _LIMIT,
                    },
                    ["group_path"],
                ),
            ),
            types.Tool(
                name="get_project_description",
                description="Get the description of a GitLab project",
                inputSchema=_object({"project_path": _PROJECT_PATH}, ["project_path"]),
            ),
            types.Tool(
                name="get_project_topics",
                description="Get the topics of a GitLab project",
                inputSchema=_object({"project_path": _PROJECT_PATH}, ["project_path"]),
            ),
            types.Tool(
                name="get_latest_pipeline",
                description="Get the most recently updated pipeline of a project",
                inputSchema=_object(
                    {"project_path": _PROJECT_PATH, "ref": {"type": "string", "description": "Branch or tag"}},
                    ["project_path"],
                ),
            ),
            types.Tool(
                name="list_pipeline_jobs",
                description=(
                    "List jobs of a pipeline (latest pipeline by default), optionally "
                    "filtered by status and stage"
                ),
                inputSchema=_object(
                    {
                        "project_path": _PROJECT_PATH,
                        "pipeline_id": _PIPELINE_ID,
                        "ref": _REF,
                        "scope": {
                            "type": "array",
                            "items": {"type": "string", "enum": JOB_STATUSES},
                            "description": "Job statuses to include (e.g. ['failed', 'canceled'])",
                        },
                        "stage": {"type": "string", "description": "Only jobs of this stage"},
                        "limit": _LIMIT,
                    },
                    ["project_path"],
                ),
            ),
            types.Tool(
                name="get_job_log",
                description="Get the log (trace) of a job in a pipeline",
                inputSchema=_object(
                    {
                        "project_path": _PROJECT_PATH,
                        "job_id": _JOB_ID,
                        "pipeline_id": _PIPELINE_ID,
                        "ref": _REF,
                    },
                    ["project_path", "job_id"],
                ),
            ),
            types.Tool(
                name="download_job_trace",
                description="Save the log (trace) of a job in a pipeline to a local file",
                inputSchema=_object(
                    {
                        "project_path": _PROJECT_PATH,
                        "job_id": _JOB_ID,
                        "pipeline_id": _PIPELINE_ID,
                        "ref": _REF,
                        "output_path": {
                            "type": "string",
                            "description": "Destination file; defaults to ./job_<id>_trace.log",
                        },
                    },
                    ["project_path", "job_id"],
                ),
            ),
        ]

    def has_tool(self, name: str) -> bool:
        return name in self._dispatch

    async def execute(self, name: str, arguments: Dict[str, Any]) -> str:
        """Run tool ``name``; raises KeyError for unknown tools."""
        handler = self._dispatch[name]
        return _to_json(await handler(arguments))

    # ------------------------------------------------------------------
    # Tool implementations
    # ------------------------------------------------------------------

    async def _list_issues(self, arguments: Dict[str, Any]):
        options = ListIssuesOptions(
            state=optional_str(arguments, "state") or "opened",
            labels=string_list(arguments, "labels"),
            limit=optional_int(arguments, "limit"),
            include_group_issues=optional_bool(arguments, "include_group_issues", True),
        )
        return await self.issues.list_issues(require_str(arguments, "project_path"), options)

    async def _list_labels(self, arguments: Dict[str, Any]):
        options = ListLabelsOptions(
            with_counts=optional_bool(arguments, "with_counts", False),
            include_ancestor_groups=optional_bool(arguments, "include_ancestor_groups", True),
            search=optional_str(arguments, "search"),
            limit=optional_int(arguments, "limit"),
        )
        return await list_labels(self.client, require_str(arguments, "project_path"), options)

    async def _validate_labels(self, arguments: Dict[str, Any]):
        project_path = require_str(arguments, "project_path")
        labels = string_list(arguments, "labels")
        if not self.labels.enabled:
            return {
                "project_path": project_path,
                "labels": labels,
                "valid": True,
                "skipped": True,
                "reason": "label validation is disabled (GITLAB_VALIDATE_LABELS=false)",
            }
        await self.labels.validate(project_path, labels)
        return {
            "project_path": project_path,
            "labels": labels,
            "valid": True,
            "scopes": self.labels.scopes_for(project_path),
        }

    async def _list_epics(self, arguments: Dict[str, Any]):
        options = ListEpicsOptions(
            state=optional_str(arguments, "state") or "opened",
            limit=optional_int(arguments, "limit"),
        )
        return await list_group_epics(self.client, require_str(arguments, "group_path"), options)

    async def _get_project_description(self, arguments: Dict[str, Any]):
        return await get_project_description(self.client, require_str(arguments, "project_path"))

    async def _get_project_topics(self, arguments: Dict[str, Any]):
        return await get_project_topics(self.client, require_str(arguments, "project_path"))

    async def _get_latest_pipeline(self, arguments: Dict[str, Any]):
        return await self.pipelines.resolve_latest_pipeline(
            require_str(arguments, "project_path"), optional_str(arguments, "ref")
        )

    async def _list_pipeline_jobs(self, arguments: Dict[str, Any]):
        options = ListPipelineJobsOptions(
            ref=optional_str(arguments, "ref"),
            scope=string_list(arguments, "scope"),
            stage=optional_str(arguments, "stage"),
            limit=optional_int(arguments, "limit"),
        )
        return await self.pipelines.list_jobs_for_pipeline(
            require_str(arguments, "project_path"), optional_int(arguments, "pipeline_id"), options
        )

    async def _get_job_log(self, arguments: Dict[str, Any]):
        return await self.pipelines.get_job_log(
            require_str(arguments, "project_path"),
            require_int(arguments, "job_id"),
            optional_int(arguments, "pipeline_id"),
            optional_str(arguments, "ref"),
        )

    async def _download_job_trace(self, arguments: Dict[str, Any]):
        return await self.pipelines.download_job_trace(
            require_str(arguments, "project_path"),
            require_int(arguments, "job_id"),
            optional_int(arguments, "pipeline_id"),
            optional_str(arguments, "ref"),
            optional_str(arguments, "output_path"),
        )
