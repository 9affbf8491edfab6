from __future__ import annotations

from .base import LOCAL_ID_PREFIX, ReadParams, ResourceService, is_local_id
from .notifications import NotificationService
from .posts import PostService
from .profiles import ProfileService
from .roles import DEFAULT_ROLES, OWNER_ROLES, RoleService, has_admin_role

__all__ = [
    "LOCAL_ID_PREFIX",
    "ReadParams",
    "ResourceService",
    "is_local_id",
    "NotificationService",
    "PostService",
    "ProfileService",
    "RoleService",
    "DEFAULT_ROLES",
    "OWNER_ROLES",
    "has_admin_role",
]
