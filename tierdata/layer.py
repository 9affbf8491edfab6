from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from .config import DataLayerConfig
from .context import DataContext, build_context
from .reporter import Reporter
from .services.base import ReadParams, ResourceService
from .services.notifications import NotificationService
from .services.posts import PostService
from .services.profiles import ProfileService
from .services.roles import RoleService
from .storage import MirrorStore
from .types import ResourceKind, ValidationError

logger = logging.getLogger(__name__)


class DataLayer:
    """
    Single entry point for callers.

    Generic `read(kind, params)` / `write(kind, payload)` dispatch to the
    per-kind services; the services are also exposed directly for their
    richer helpers (posts.list_user_posts, notifications.notify, roles.*).
    """

    def __init__(self, ctx: DataContext) -> None:
        self.ctx = ctx
        self.posts = PostService(ctx)
        self.notifications = NotificationService(ctx)
        self.profiles = ProfileService(ctx)
        self.roles = RoleService(ctx)
        self._services: Dict[ResourceKind, ResourceService] = {
            ResourceKind.POSTS: self.posts,
            ResourceKind.NOTIFICATIONS: self.notifications,
            ResourceKind.PROFILES: self.profiles,
        }

    @classmethod
    def build(
        cls,
        config: Optional[DataLayerConfig] = None,
        *,
        mirror: Optional[MirrorStore] = None,
        reporter: Optional[Reporter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "DataLayer":
        ctx = build_context(config, mirror=mirror, reporter=reporter, transport=transport)
        if not ctx.config.backend_configured:
            logger.info("Backend not configured; running on the local mirror (demo mode)")
        return cls(ctx)

    @property
    def backend_configured(self) -> bool:
        return self.ctx.config.backend_configured

    def service(self, kind: Union[str, ResourceKind]) -> ResourceService:
        try:
            k = ResourceKind(kind)
        except ValueError as exc:
            raise ValidationError(f"Unknown resource kind: {kind!r}") from exc
        if k not in self._services:
            raise ValidationError(f"{k.value} are resolved with resolve_roles()/set_roles(), not read/write")
        return self._services[k]

    async def read(
        self,
        kind: Union[str, ResourceKind],
        params: Union[ReadParams, Mapping[str, Any], None] = None,
        *,
        empty_is_final: bool = False,
    ) -> List[Any]:
        return await self.service(kind).read(params, empty_is_final=empty_is_final)

    async def write(self, kind: Union[str, ResourceKind], payload: Any) -> Any:
        return await self.service(kind).write(payload)

    async def update(self, kind: Union[str, ResourceKind], entity_id: str, changes: Any) -> Any:
        return await self.service(kind).update(entity_id, changes)

    def seed_demo_data(self) -> List[ResourceKind]:
        return self.ctx.seeder.ensure_all_seeded()

    def clear_demo_state(self) -> None:
        self.ctx.seeder.clear_demo_state()
