from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import DataLayerConfig
from ..models import (
    Notification,
    NotificationCreate,
    Post,
    PostCreate,
    Profile,
    validate_row,
    validate_rows,
)
from ..types import ConfigurationError, RejectedError, TransientError

SOURCE = "primary API"


class PrimaryClient:
    """
    Client for the privileged server API (service-role access behind it).

    Every non-2xx answer raises: 5xx as TransientError, anything else as
    RejectedError. Rows are validated here so nothing malformed reaches the mirror.
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
        return self.config.primary_configured

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        if not self.configured:
            raise ConfigurationError("Primary API is not configured (TIERDATA_API_BASE_URL / Supabase credentials)")

        url = self.config.api_base_url.rstrip("/") + path
        headers = {"Accept": "application/json"}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"

        async with httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport) as client:
            try:
                resp = await client.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=json_body,
                )
            except httpx.TimeoutException as exc:
                raise TransientError(f"{method} {path} timed out after {self.config.timeout}s") from exc
            except httpx.RequestError as exc:
                raise TransientError(f"Request error talking to primary API: {exc}") from exc

        if resp.status_code >= 500:
            raise TransientError(
                f"Primary API returned {resp.status_code} for {method} {path}: {resp.text[:300]}",
                status_code=resp.status_code,
            )
        if not 200 <= resp.status_code < 300:
            raise RejectedError(
                f"Primary API returned {resp.status_code} for {method} {path}: {resp.text[:300]}",
                status_code=resp.status_code,
            )

        if not resp.content:
            return None

        try:
            return resp.json()
        except ValueError as exc:
            raise RejectedError(f"Invalid JSON from primary API for {method} {path}") from exc

    # --------------------------
    # Posts
    # --------------------------

    async def list_posts(self, limit: int = 10) -> List[Post]:
        data = await self._request("GET", "/api/posts", params={"limit": limit})
        return validate_rows(Post, data, SOURCE)

    async def list_user_posts(self, user_id: str) -> List[Post]:
        data = await self._request("GET", f"/api/user/{user_id}/posts")
        return validate_rows(Post, data, SOURCE)

    async def create_post(self, payload: PostCreate) -> Post:
        data = await self._request("POST", "/api/posts", json_body=payload.model_dump(mode="json"))
        return validate_row(Post, data, SOURCE)

    async def update_post(self, post_id: str, changes: Dict[str, Any]) -> Post:
        data = await self._request("PATCH", f"/api/posts/{post_id}", json_body=changes)
        return validate_row(Post, data, SOURCE)

    # --------------------------
    # Notifications
    # --------------------------

    async def list_notifications(self, user_id: str, limit: int = 10) -> List[Notification]:
        data = await self._request("GET", "/api/notifications", params={"user_id": user_id, "limit": limit})
        return validate_rows(Notification, data, SOURCE)

    async def create_notification(self, payload: NotificationCreate) -> Optional[Notification]:
        """The server decides authorship; it may answer 204 with no body."""
        data = await self._request("POST", "/api/notifications", json_body=payload.model_dump(mode="json"))
        if data is None:
            return None
        return validate_row(Notification, data, SOURCE)

    async def update_notification(self, notification_id: str, changes: Dict[str, Any]) -> Notification:
        data = await self._request("PATCH", f"/api/notifications/{notification_id}", json_body=changes)
        return validate_row(Notification, data, SOURCE)

    # --------------------------
    # Profiles
    # --------------------------

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        data = await self._request("GET", f"/api/profile/{user_id}")
        if data is None:
            return None
        return validate_row(Profile, data, SOURCE)

    async def ensure_profile(self, user_id: str, profile: Dict[str, Any]) -> Profile:
        data = await self._request("POST", "/api/profile/ensure", json_body={"id": user_id, "profile": profile})
        return validate_row(Profile, data, SOURCE)
