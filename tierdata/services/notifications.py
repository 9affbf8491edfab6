from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from ..clients.secondary import TABLE_NOTIFICATIONS
from ..models import (
    Notification,
    NotificationCreate,
    NotificationUpdate,
    validate_row,
    validate_rows,
)
from ..types import ErrorKind, DataLayerError, RejectedError, ResourceKind, ValidationError
from .base import AcceptedWithoutRow, ReadParams, ResourceService

logger = logging.getLogger(__name__)

SOURCE = "Supabase"


class NotificationService(ResourceService):
    kind = ResourceKind.NOTIFICATIONS
    model = Notification
    create_model = NotificationCreate
    update_model = NotificationUpdate
    default_limit = 10

    # --------------------------
    # Public API
    # --------------------------

    async def list_for_user(self, user_id: str, limit: int = 10) -> List[Notification]:
        # "Nothing new" is a normal inbox state, not a reason to show demo rows.
        return await self.read({"user_id": user_id, "limit": limit}, empty_is_final=True)

    async def create(self, payload: Any) -> Notification:
        return await self.write(payload)

    async def mark_read(self, notification_id: str) -> Optional[Notification]:
        return await self.update(notification_id, {"read": True})

    async def notify(
        self,
        subject_id: str,
        kind: Any,
        title: str,
        message: Optional[str] = None,
    ) -> bool:
        """
        Fire-and-forget notification through the primary API.

        Never raises. No mirror fallback: a dropped notification is acceptable.
        Returns whether the primary accepted it.
        """
        try:
            body = NotificationCreate(user_id=subject_id, type=kind, title=title, message=message)
            await self.ctx.primary.create_notification(body)
            return True
        except DataLayerError as exc:
            if exc.kind == ErrorKind.CONFIGURATION:
                logger.debug("Notification %r for %s not sent: %s", title, subject_id, exc)
            else:
                logger.warning("Failed to create notification %r for %s: %s", title, subject_id, exc)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to create notification %r for %s: %s", title, subject_id, exc)
        return False

    # --------------------------
    # Tiers
    # --------------------------

    def check_params(self, params: ReadParams) -> None:
        if not params.filters.get("user_id"):
            raise ValidationError("notifications are read per user: user_id is required")

    async def primary_read(self, params: ReadParams) -> List[Notification]:
        return await self.ctx.primary.list_notifications(
            params.filters["user_id"], limit=params.limit or self.default_limit
        )

    async def secondary_read(self, params: ReadParams) -> List[Notification]:
        rows = await self.ctx.secondary.select(
            TABLE_NOTIFICATIONS,
            eq={"user_id": params.filters["user_id"]},
            order="created_at",
            limit=params.limit,
        )
        return validate_rows(Notification, rows, SOURCE)

    async def primary_create(self, body: NotificationCreate) -> Union[Notification, AcceptedWithoutRow]:
        created = await self.ctx.primary.create_notification(body)
        if created is None:
            # 2xx without a body: the row exists server-side, so no other tier may insert it again.
            return self._accepted(body)
        return created

    async def secondary_create(self, body: NotificationCreate) -> Notification:
        row = await self.ctx.secondary.insert(TABLE_NOTIFICATIONS, body.model_dump(mode="json"))
        return validate_row(Notification, row, SOURCE)

    async def primary_update(self, entity_id: str, changes: Dict[str, Any]) -> Notification:
        return await self.ctx.primary.update_notification(entity_id, changes)

    async def secondary_update(self, entity_id: str, changes: Dict[str, Any]) -> Notification:
        row = await self.ctx.secondary.update(TABLE_NOTIFICATIONS, eq={"id": entity_id}, changes=changes)
        if row is None:
            raise RejectedError(f"No editable notification {entity_id}")
        return validate_row(Notification, row, SOURCE)

    def synthesize(self, body: NotificationCreate, now: str) -> Dict[str, Any]:
        row = body.model_dump(mode="json")
        row.update({"read": False, "created_at": now})
        return row


def unread_count(items: List[Notification]) -> int:
    return sum(1 for n in items if not n.read)

