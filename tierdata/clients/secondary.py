from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import DataLayerConfig
from ..types import ConfigurationError, RejectedError, TransientError

# PostgREST: `.single()` matched zero rows. Success with an empty result, not an error.
NO_ROWS_CODE = "PGRST116"

TABLE_POSTS = "community_posts"
TABLE_NOTIFICATIONS = "notifications"
TABLE_PROFILES = "user_profiles"
TABLE_ROLES = "user_roles"

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _eq_params(eq: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {col: f"eq.{_literal(v)}" for col, v in (eq or {}).items()}


def _in_list(values: Iterable[str]) -> str:
    quoted = ['"' + str(v).replace('"', '\\"') + '"' for v in values]
    return "(" + ",".join(quoted) + ")"


class SecondaryClient:
    """
    Direct, row-level-secured table access (PostgREST / Supabase REST).

    Returns plain dict rows; typed validation happens in the resource services
    before anything is echoed into the mirror.
    """

    def __init__(
        self,
        config: DataLayerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.transport = transport

    @property
    def configured(self) -> bool:
        return self.config.backend_configured

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        single: bool = False,
        prefer: Optional[str] = None,
    ) -> Any:
        if not self.configured:
            raise ConfigurationError("Supabase URL / anon key missing or placeholder")

        url = f"{self.config.rest_base}/{table}"
        bearer = self.config.access_token or self.config.supabase_anon_key
        headers = {
            "apikey": self.config.supabase_anon_key,
            "Authorization": f"Bearer {bearer}",
            "Accept": SINGLE_OBJECT if single else "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer

        async with httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport) as client:
            try:
                resp = await client.request(method, url, headers=headers, params=params, json=json_body)
            except httpx.TimeoutException as exc:
                raise TransientError(f"{method} {table} timed out after {self.config.timeout}s") from exc
            except httpx.RequestError as exc:
                raise TransientError(f"Request error talking to Supabase ({table}): {exc}") from exc

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {"message": resp.text}
            code = body.get("code") if isinstance(body, dict) else None
            message = body.get("message") if isinstance(body, dict) else str(body)

            if code == NO_ROWS_CODE:
                return None

            err_cls = TransientError if resp.status_code >= 500 else RejectedError
            raise err_cls(
                f"Supabase returned {resp.status_code} for {method} {table}: {code or ''} {message}".strip(),
                status_code=resp.status_code,
                code=code,
            )

        if not resp.content:
            return None

        try:
            return resp.json()
        except ValueError as exc:
            raise RejectedError(f"Invalid JSON from Supabase for {method} {table}") from exc

    # --------------------------
    # Query helpers
    # --------------------------

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        ascending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": columns, **_eq_params(eq)}
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        if limit is not None:
            params["limit"] = int(limit)

        data = await self._request("GET", table, params=params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise RejectedError(f"Supabase returned {type(data).__name__} for {table}, expected rows")
        return data

    async def select_single(
        self,
        table: str,
        *,
        eq: Dict[str, Any],
        columns: str = "*",
    ) -> Optional[Dict[str, Any]]:
        """One row, or None when nothing matched (PGRST116)."""
        params: Dict[str, Any] = {"select": columns, **_eq_params(eq)}
        data = await self._request("GET", table, params=params, single=True)
        if data is not None and not isinstance(data, dict):
            raise RejectedError(f"Supabase returned {type(data).__name__} for single {table} row")
        return data

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request("POST", table, json_body=row, prefer="return=representation")
        rows = data if isinstance(data, list) else [data]
        if not rows or not isinstance(rows[0], dict):
            raise RejectedError(f"Supabase insert into {table} returned no row")
        return rows[0]

    async def update(
        self,
        table: str,
        *,
        eq: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        data = await self._request(
            "PATCH", table, params=_eq_params(eq), json_body=changes, prefer="return=representation"
        )
        if isinstance(data, list):
            return data[0] if data else None
        return data

    async def upsert(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        *,
        on_conflict: str,
    ) -> List[Dict[str, Any]]:
        data = await self._request(
            "POST",
            table,
            params={"on_conflict": on_conflict},
            json_body=rows,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return data if isinstance(data, list) else []

    async def delete(
        self,
        table: str,
        *,
        eq: Dict[str, Any],
        not_in: Optional[Dict[str, Iterable[str]]] = None,
    ) -> None:
        params = _eq_params(eq)
        for col, values in (not_in or {}).items():
            params[col] = f"not.in.{_in_list(values)}"
        await self._request("DELETE", table, params=params)
