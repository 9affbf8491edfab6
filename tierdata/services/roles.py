"""
tierdata/services/roles.py

Role resolution cascade.

resolve_roles():
  (a) user_roles table rows for the subject (direct query)
  (b) verified email on the owner allow-list -> OWNER_ROLES
  (c) mirror override map (mock_roles: subject id -> [role, ...])
  (d) DEFAULT_ROLES
The result is never empty. set_roles() never raises.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from ..clients.secondary import TABLE_ROLES
from ..context import DataContext
from ..models import RoleAssignment
from ..types import MIRROR_KEYS, RejectedError, ResourceKind, Tier
from .base import attempt_tier

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "member"
DEFAULT_ROLES = frozenset({DEFAULT_ROLE})
OWNER_ROLES = frozenset({"owner", "admin", "founder"})
ADMIN_ROLES = OWNER_ROLES


def has_admin_role(roles: Iterable[str]) -> bool:
    return any(str(r).strip().lower() in ADMIN_ROLES for r in roles)


def _clean(roles: Iterable[Any]) -> List[str]:
    out: List[str] = []
    for r in roles or []:
        s = str(r).strip()
        if s and s not in out:
            out.append(s)
    return out


class RoleService:
    kind = ResourceKind.ROLES

    def __init__(self, ctx: DataContext) -> None:
        self.ctx = ctx

    @property
    def mirror_key(self) -> str:
        return MIRROR_KEYS[self.kind]

    # --------------------------
    # Read
    # --------------------------

    async def resolve_roles(self, subject_id: str, email: Optional[str] = None) -> Set[str]:
        outcome = await attempt_tier(
            self.kind,
            Tier.SECONDARY,
            self.ctx.secondary_enabled and bool(subject_id),
            lambda: self._table_roles(subject_id),
        )
        if outcome.ok:
            logger.debug("roles for %s from user_roles table", subject_id)
            return set(outcome.data)

        if self.ctx.config.is_owner_email(email):
            logger.debug("roles for %s from owner allow-list", subject_id)
            return set(OWNER_ROLES)

        try:
            override = _clean(self._overrides().get(subject_id) or [])
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read role overrides for %s: %s", subject_id, exc)
            override = []
        if override:
            logger.debug("roles for %s from mirror override", subject_id)
            return set(override)

        return set(DEFAULT_ROLES)

    async def _table_roles(self, subject_id: str) -> List[str]:
        rows = await self.ctx.secondary.select(TABLE_ROLES, columns="role", eq={"user_id": subject_id})
        roles: List[str] = []
        for row in rows:
            if not isinstance(row, dict) or not isinstance(row.get("role"), str):
                raise RejectedError(f"Malformed user_roles row for {subject_id}: {row!r}")
            roles.append(row["role"])
        return _clean(roles)

    # --------------------------
    # Write
    # --------------------------

    async def set_roles(self, subject_id: str, roles: Iterable[str]) -> RoleAssignment:
        cleaned = _clean(roles)
        if not cleaned:
            logger.warning("set_roles for %s got no roles; using %s", subject_id, DEFAULT_ROLE)
            cleaned = [DEFAULT_ROLE]

        if not subject_id:
            logger.warning("set_roles called without a subject id; nothing stored")
            return RoleAssignment.model_construct(user_id=subject_id, roles=cleaned)

        assignment = RoleAssignment(user_id=subject_id, roles=cleaned)

        outcome = await attempt_tier(
            self.kind,
            Tier.SECONDARY,
            self.ctx.secondary_enabled,
            lambda: self._write_table(assignment),
        )
        if not outcome.ok:
            logger.info("roles for %s kept in mirror override only", subject_id)

        # Echo on success, fallback on failure: the override map tracks the last write either way.
        try:
            overrides = self._overrides()
            overrides[subject_id] = assignment.roles
            self.ctx.mirror.set(self.mirror_key, overrides)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not store role override for %s: %s", subject_id, exc)

        return assignment

    async def _write_table(self, assignment: RoleAssignment) -> List[str]:
        # Upsert before pruning: a failure in between leaves a superset of the new roles.
        await self.ctx.secondary.upsert(
            TABLE_ROLES,
            [{"user_id": assignment.user_id, "role": r} for r in assignment.roles],
            on_conflict="user_id,role",
        )
        await self.ctx.secondary.delete(
            TABLE_ROLES, eq={"user_id": assignment.user_id}, not_in={"role": assignment.roles}
        )
        return assignment.roles

    # --------------------------
    # Mirror
    # --------------------------

    def _overrides(self) -> Dict[str, Any]:
        self.ctx.seeder.ensure_seeded(self.kind)
        value = self.ctx.mirror.get(self.mirror_key)
        if not isinstance(value, dict):
            if value is not None:
                logger.warning("Mirror key %r holds %s, expected a map", self.mirror_key, type(value).__name__)
            return {}
        return value
