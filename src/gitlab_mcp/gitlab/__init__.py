"""GitLab REST API v4 access: client, models and transport errors."""

from .base import RemoteResourceClient, ResourceRef
from .client import GitLabClient

__all__ = ["GitLabClient", "RemoteResourceClient", "ResourceRef"]
