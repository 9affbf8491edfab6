"""
tierdata/services/base.py

Generic tiered resource service.

Read:  primary -> secondary -> mirror (seeded on first empty hit)
Write: primary -> secondary -> local synthesis in the mirror
Tiers are awaited one after another, never concurrently. Whatever a tier
raises is reduced to a TierOutcome; only ValidationError of the caller's own
payload ever leaves this module.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel

from ..context import DataContext
from ..models import utc_now_iso, validate_payload
from ..types import (
    MIRROR_KEYS,
    DataLayerError,
    DataResult,
    ErrorKind,
    ResourceKind,
    Tier,
    TierOutcome,
    ValidationError,
)

logger = logging.getLogger(__name__)

LOCAL_ID_PREFIX = "local_"
ACCEPTED_ID_PREFIX = "accepted_"


def is_local_id(entity_id: Optional[str]) -> bool:
    return bool(entity_id) and str(entity_id).startswith(LOCAL_ID_PREFIX)


@dataclass(frozen=True)
class AcceptedWithoutRow:
    """A remote tier confirmed the write (2xx) but sent no row back. Ends the cascade; nothing is echoed."""

    entity: Any


@dataclass
class ReadParams:
    """`limit` caps the result; every other key is an equality filter on row fields."""

    limit: Optional[int] = None
    filters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, params: Union["ReadParams", Mapping[str, Any], None], default_limit: Optional[int] = None) -> "ReadParams":
        if isinstance(params, ReadParams):
            return params if params.limit is not None else cls(limit=default_limit, filters=dict(params.filters))
        raw = dict(params or {})
        limit = raw.pop("limit", None)
        if limit is None:
            limit = default_limit
        else:
            try:
                limit = int(limit)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"limit must be an integer, got {limit!r}") from exc
            if limit < 0:
                raise ValidationError("limit must be >= 0")
        return cls(limit=limit, filters=raw)

    def truncate(self, items: List[Any]) -> List[Any]:
        return items if self.limit is None else items[: self.limit]


async def attempt_tier(
    kind: ResourceKind,
    tier: Tier,
    enabled: bool,
    call: Callable[[], Awaitable[Any]],
) -> TierOutcome:
    """Run one tier and classify the result. Never raises."""
    if not enabled:
        logger.debug("%s: %s tier skipped (backend not configured)", kind.value, tier.value)
        return TierOutcome.error(tier, ErrorKind.CONFIGURATION, "not configured")

    try:
        data = await call()
    except DataLayerError as exc:
        if exc.kind == ErrorKind.CONFIGURATION:
            logger.debug("%s: %s tier skipped: %s", kind.value, tier.value, exc)
        else:
            logger.warning("%s: %s tier failed (%s): %s", kind.value, tier.value, exc.kind.value, exc)
        return TierOutcome.error(tier, exc.kind, str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.warning("%s: %s tier failed unexpectedly: %r", kind.value, tier.value, exc)
        return TierOutcome.error(tier, ErrorKind.TRANSIENT, repr(exc))

    if data is None or (isinstance(data, list) and not data):
        return TierOutcome.empty(tier)
    return TierOutcome.success(tier, data)


class ResourceService:
    kind: ResourceKind
    model: Type[BaseModel]
    create_model: Type[BaseModel]
    update_model: Type[BaseModel]
    default_limit: Optional[int] = None

    def __init__(self, ctx: DataContext) -> None:
        self.ctx = ctx

    @property
    def mirror_key(self) -> str:
        return MIRROR_KEYS[self.kind]

    # ------------------------------------------------------------------
    # Tier hooks
    # ------------------------------------------------------------------

    def check_params(self, params: ReadParams) -> None:
        pass

    async def primary_read(self, params: ReadParams) -> List[Any]:
        raise NotImplementedError

    async def secondary_read(self, params: ReadParams) -> List[Any]:
        raise NotImplementedError

    async def primary_create(self, body: Any) -> Any:
        raise NotImplementedError

    async def secondary_create(self, body: Any) -> Any:
        raise NotImplementedError

    async def primary_update(self, entity_id: str, changes: Dict[str, Any]) -> Any:
        raise NotImplementedError

    async def secondary_update(self, entity_id: str, changes: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def mirror_match(self, row: Dict[str, Any], params: ReadParams) -> bool:
        return all(row.get(k) == v for k, v in params.filters.items())

    def synthesize(self, body: Any, now: str) -> Dict[str, Any]:
        """Row for an entity no remote tier accepted. `id` is assigned by the caller."""
        row = body.model_dump(mode="json")
        row.update({"created_at": now, "updated_at": now})
        return row

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def fetch(
        self,
        params: Union[ReadParams, Mapping[str, Any], None] = None,
        *,
        empty_is_final: bool = False,
    ) -> DataResult:
        """
        Run the read cascade.

        empty_is_final: a remote tier that answered successfully with zero rows
        ends the cascade with []. Tier errors still fall through either way.
        """
        p = ReadParams.coerce(params, self.default_limit)
        self.check_params(p)
        attempts: List[TierOutcome] = []

        tiers: Tuple[Tuple[Tier, bool, Callable[[], Awaitable[Any]]], ...] = (
            (Tier.PRIMARY, self.ctx.primary_enabled, lambda: self.primary_read(p)),
            (Tier.SECONDARY, self.ctx.secondary_enabled, lambda: self.secondary_read(p)),
        )
        for tier, enabled, call in tiers:
            outcome = await attempt_tier(self.kind, tier, enabled, call)
            attempts.append(outcome)
            if outcome.ok:
                logger.debug("%s: served from %s", self.kind.value, tier.value)
                return DataResult(data=p.truncate(list(outcome.data)), source=tier, attempts=attempts)
            if outcome.is_empty and empty_is_final:
                logger.debug("%s: %s returned no rows; treating as final", self.kind.value, tier.value)
                return DataResult(data=[], source=tier, attempts=attempts)

        rows = self._mirror_read(p)
        attempts.append(TierOutcome.success(Tier.MIRROR, rows) if rows else TierOutcome.empty(Tier.MIRROR))
        logger.debug("%s: served %d row(s) from mirror", self.kind.value, len(rows))
        return DataResult(data=rows, source=Tier.MIRROR, attempts=attempts)

    async def read(
        self,
        params: Union[ReadParams, Mapping[str, Any], None] = None,
        *,
        empty_is_final: bool = False,
    ) -> List[Any]:
        return (await self.fetch(params, empty_is_final=empty_is_final)).data

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def write_result(self, payload: Any) -> DataResult:
        body = self._validate(self.create_model, payload)
        attempts: List[TierOutcome] = []

        for tier, enabled, call in (
            (Tier.PRIMARY, self.ctx.primary_enabled, lambda: self.primary_create(body)),
            (Tier.SECONDARY, self.ctx.secondary_enabled, lambda: self.secondary_create(body)),
        ):
            outcome = await attempt_tier(self.kind, tier, enabled, call)
            attempts.append(outcome)
            if outcome.ok:
                if isinstance(outcome.data, AcceptedWithoutRow):
                    logger.info("%s: %s accepted the write without returning it; not mirrored", self.kind.value, tier.value)
                    return DataResult(data=outcome.data.entity, source=tier, attempts=attempts)
                self._echo(outcome.data)
                return DataResult(data=outcome.data, source=tier, attempts=attempts)

        entity = self._synthesize_local(body)
        attempts.append(TierOutcome.success(Tier.LOCAL, entity))
        logger.info("%s: no remote tier accepted the write; stored locally as %s", self.kind.value, self._id_of(entity))
        return DataResult(data=entity, source=Tier.LOCAL, attempts=attempts)

    async def write(self, payload: Any) -> Any:
        return (await self.write_result(payload)).data

    async def update_result(self, entity_id: str, changes: Any) -> DataResult:
        if not entity_id:
            exc = ValidationError(f"{self.kind.value} id is required")
            self._report_invalid(exc)
            raise exc
        body = self._validate(self.update_model, changes)
        change_set = self._change_set(body)
        if not change_set:
            exc = ValidationError(f"No changes given for {self.kind.value} {entity_id}")
            self._report_invalid(exc)
            raise exc

        attempts: List[TierOutcome] = []
        for tier, enabled, call in (
            (Tier.PRIMARY, self.ctx.primary_enabled, lambda: self.primary_update(entity_id, change_set)),
            (Tier.SECONDARY, self.ctx.secondary_enabled, lambda: self.secondary_update(entity_id, change_set)),
        ):
            outcome = await attempt_tier(self.kind, tier, enabled, call)
            attempts.append(outcome)
            if outcome.ok:
                self._echo(outcome.data)
                return DataResult(data=outcome.data, source=tier, attempts=attempts)

        entity = self._local_update(entity_id, change_set)
        attempts.append(TierOutcome.success(Tier.LOCAL, entity) if entity is not None else TierOutcome.empty(Tier.LOCAL))
        return DataResult(data=entity, source=Tier.LOCAL, attempts=attempts)

    async def update(self, entity_id: str, changes: Any) -> Any:
        """Updated entity, or None when only the mirror was reachable and it does not hold `entity_id`."""
        return (await self.update_result(entity_id, changes)).data

    # ------------------------------------------------------------------
    # Mirror helpers
    # ------------------------------------------------------------------

    def _load_collection(self) -> List[Dict[str, Any]]:
        value = self.ctx.mirror.get(self.mirror_key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("Mirror key %r holds %s, expected a list", self.mirror_key, type(value).__name__)
            return []
        return [r for r in value if isinstance(r, dict)]

    def _save_collection(self, rows: List[Dict[str, Any]]) -> None:
        self.ctx.mirror.set(self.mirror_key, rows)

    def _seeded_collection(self) -> List[Dict[str, Any]]:
        self.ctx.seeder.ensure_seeded(self.kind)
        return self._load_collection()

    def _mirror_read(self, params: ReadParams) -> List[Any]:
        rows = self._load_collection()
        if not rows:
            rows = self._seeded_collection()

        out: List[Any] = []
        for row in rows:
            if not self.mirror_match(row, params):
                continue
            try:
                out.append(self.model.model_validate(row))
            except Exception as exc:  # noqa: BLE001
                logger.warning("Skipping malformed %s row %r in mirror: %s", self.kind.value, row.get("id"), exc)
        return params.truncate(out)

    def _echo(self, entity: Any) -> None:
        """Insert-or-replace a remote-confirmed entity in the mirror."""
        row = entity.model_dump(mode="json")
        rows = self._seeded_collection()
        for i, existing in enumerate(rows):
            if existing.get("id") == row.get("id"):
                rows[i] = row
                break
        else:
            rows.insert(0, row)
        self._save_collection(rows)

    def _local_id(self, rows: List[Dict[str, Any]]) -> str:
        taken = {str(r.get("id")) for r in rows}
        stamp = int(time.time() * 1000)
        candidate = f"{LOCAL_ID_PREFIX}{self.kind.value}_{stamp}"
        while candidate in taken:
            stamp += 1
            candidate = f"{LOCAL_ID_PREFIX}{self.kind.value}_{stamp}"
        return candidate

    def _accepted(self, body: Any) -> AcceptedWithoutRow:
        row = self.synthesize(body, utc_now_iso())
        row["id"] = f"{ACCEPTED_ID_PREFIX}{self.kind.value}_{int(time.time() * 1000)}"
        return AcceptedWithoutRow(self.model.model_validate(row))

    def _synthesize_local(self, body: Any) -> Any:
        rows = self._seeded_collection()
        row = self.synthesize(body, utc_now_iso())
        row["id"] = self._local_id(rows)
        entity = self.model.model_validate(row)
        rows.insert(0, entity.model_dump(mode="json"))
        self._save_collection(rows)
        return entity

    def _local_update(self, entity_id: str, changes: Dict[str, Any]) -> Any:
        rows = self._seeded_collection()
        for i, existing in enumerate(rows):
            if existing.get("id") == entity_id:
                merged = {**existing, **changes, "updated_at": utc_now_iso()}
                if "updated_at" not in self.model.model_fields:
                    merged.pop("updated_at")
                entity = self.model.model_validate(merged)
                rows[i] = entity.model_dump(mode="json")
                self._save_collection(rows)
                return entity
        logger.info("%s: %s not found in mirror; nothing updated", self.kind.value, entity_id)
        return None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _report_invalid(self, exc: ValidationError) -> None:
        self.ctx.reporter.report("error", f"Could not save {self.kind.value}", str(exc))

    def _validate(self, model: Type[BaseModel], payload: Any) -> Any:
        try:
            return validate_payload(model, payload)
        except ValidationError as exc:
            self._report_invalid(exc)
            raise

    @staticmethod
    def _change_set(body: BaseModel) -> Dict[str, Any]:
        changes = body.model_dump(mode="json", exclude_unset=True)
        changes.update(body.model_extra or {})
        return changes

    @staticmethod
    def _id_of(entity: Any) -> Optional[str]:
        return getattr(entity, "id", None)
