from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..clients.secondary import TABLE_PROFILES
from ..models import Profile, ProfileEnsure, ProfileUpdate, utc_now_iso, validate_row
from ..types import RejectedError, ResourceKind, ValidationError
from .base import ReadParams, ResourceService

SOURCE = "Supabase"


class ProfileService(ResourceService):
    """
    User profiles, keyed by the subject id.

    Writes are create-or-merge ("ensure"): the id is the subject's, never a
    synthesized one, and a local write for an unknown subject creates its row.
    """

    kind = ResourceKind.PROFILES
    model = Profile
    create_model = ProfileEnsure
    update_model = ProfileUpdate
    default_limit = 1

    # --------------------------
    # Public API
    # --------------------------

    async def get_profile(self, user_id: str, *, empty_is_final: bool = True) -> Optional[Profile]:
        rows = await self.read({"id": user_id}, empty_is_final=empty_is_final)
        return rows[0] if rows else None

    async def ensure_profile(self, user_id: str, fields: Optional[Dict[str, Any]] = None) -> Profile:
        return await self.write({**(fields or {}), "id": user_id})

    async def update_profile(self, user_id: str, changes: Any) -> Profile:
        return await self.update(user_id, changes)

    # --------------------------
    # Tiers
    # --------------------------

    def check_params(self, params: ReadParams) -> None:
        if not params.filters.get("id"):
            raise ValidationError("profiles are read by id")

    async def primary_read(self, params: ReadParams) -> List[Profile]:
        profile = await self.ctx.primary.get_profile(params.filters["id"])
        return [profile] if profile else []

    async def secondary_read(self, params: ReadParams) -> List[Profile]:
        row = await self.ctx.secondary.select_single(TABLE_PROFILES, eq={"id": params.filters["id"]})
        return [validate_row(Profile, row, SOURCE)] if row else []

    async def primary_create(self, body: ProfileEnsure) -> Profile:
        return await self.ctx.primary.ensure_profile(body.id, self._fields(body))

    async def secondary_create(self, body: ProfileEnsure) -> Profile:
        row = {**self._fields(body), "id": body.id, "updated_at": utc_now_iso()}
        rows = await self.ctx.secondary.upsert(TABLE_PROFILES, [row], on_conflict="id")
        if not rows:
            raise RejectedError(f"Profile upsert for {body.id} returned no row")
        return validate_row(Profile, rows[0], SOURCE)

    async def primary_update(self, entity_id: str, changes: Dict[str, Any]) -> Profile:
        return await self.ctx.primary.ensure_profile(entity_id, changes)

    async def secondary_update(self, entity_id: str, changes: Dict[str, Any]) -> Profile:
        row = await self.ctx.secondary.update(
            TABLE_PROFILES, eq={"id": entity_id}, changes={**changes, "updated_at": utc_now_iso()}
        )
        if row is None:
            raise RejectedError(f"No editable profile {entity_id}")
        return validate_row(Profile, row, SOURCE)

    # --------------------------
    # Mirror
    # --------------------------

    def _synthesize_local(self, body: ProfileEnsure) -> Profile:
        return self._merge_local(body.id, self._fields(body))

    def _local_update(self, entity_id: str, changes: Dict[str, Any]) -> Profile:
        return self._merge_local(entity_id, changes)

    def _merge_local(self, user_id: str, fields: Dict[str, Any]) -> Profile:
        rows = self._seeded_collection()
        now = utc_now_iso()
        for i, existing in enumerate(rows):
            if existing.get("id") == user_id:
                entity = Profile.model_validate({**existing, **fields, "id": user_id, "updated_at": now})
                rows[i] = entity.model_dump(mode="json")
                break
        else:
            entity = Profile.model_validate({**fields, "id": user_id, "created_at": now, "updated_at": now})
            rows.insert(0, entity.model_dump(mode="json"))
        self._save_collection(rows)
        return entity

    @staticmethod
    def _fields(body: ProfileEnsure) -> Dict[str, Any]:
        fields = ResourceService._change_set(body)
        fields.pop("id", None)
        return fields
