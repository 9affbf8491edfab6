from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..clients.secondary import TABLE_POSTS
from ..models import Post, PostCreate, PostUpdate, utc_now_iso, validate_row, validate_rows
from ..types import MIRROR_KEYS, RejectedError, ResourceKind
from .base import ReadParams, ResourceService

SOURCE = "Supabase"
AUTHOR_COLUMNS = "*,user_profiles(username,full_name,avatar_url)"


class PostService(ResourceService):
    """
    Community posts.

    Feed reads (no author filter) only show published posts and fall through on
    an empty remote answer, so a fresh install still shows the demo feed.
    Per-author reads treat "no posts yet" as a real answer.
    """

    kind = ResourceKind.POSTS
    model = Post
    create_model = PostCreate
    update_model = PostUpdate
    default_limit = 10

    # --------------------------
    # Public API
    # --------------------------

    async def list_posts(self, limit: int = 10) -> List[Post]:
        return await self.read({"limit": limit})

    async def list_user_posts(self, user_id: str, limit: Optional[int] = None) -> List[Post]:
        return await self.read({"author_id": user_id, "limit": limit}, empty_is_final=True)

    async def create_post(self, payload: Any) -> Post:
        return await self.write(payload)

    async def update_post(self, post_id: str, changes: Any) -> Optional[Post]:
        return await self.update(post_id, changes)

    # --------------------------
    # Tiers
    # --------------------------

    async def primary_read(self, params: ReadParams) -> List[Post]:
        author = params.filters.get("author_id")
        if author:
            return await self.ctx.primary.list_user_posts(author)
        return await self.ctx.primary.list_posts(limit=params.limit or self.default_limit)

    async def secondary_read(self, params: ReadParams) -> List[Post]:
        author = params.filters.get("author_id")
        if author:
            rows = await self.ctx.secondary.select(
                TABLE_POSTS, eq={"author_id": author}, order="created_at", limit=params.limit
            )
        else:
            rows = await self.ctx.secondary.select(
                TABLE_POSTS,
                columns=AUTHOR_COLUMNS,
                eq={"is_published": True},
                order="created_at",
                limit=params.limit,
            )
        return validate_rows(Post, rows, SOURCE)

    async def primary_create(self, body: PostCreate) -> Post:
        return await self.ctx.primary.create_post(body)

    async def secondary_create(self, body: PostCreate) -> Post:
        row = await self.ctx.secondary.insert(TABLE_POSTS, body.model_dump(mode="json"))
        return validate_row(Post, row, SOURCE)

    async def primary_update(self, entity_id: str, changes: Dict[str, Any]) -> Post:
        return await self.ctx.primary.update_post(entity_id, changes)

    async def secondary_update(self, entity_id: str, changes: Dict[str, Any]) -> Optional[Post]:
        row = await self.ctx.secondary.update(
            TABLE_POSTS, eq={"id": entity_id}, changes={**changes, "updated_at": utc_now_iso()}
        )
        if row is None:
            # RLS hides rows the caller may not edit; PostgREST answers with an empty list.
            raise RejectedError(f"No editable post {entity_id}")
        return validate_row(Post, row, SOURCE)

    # --------------------------
    # Mirror
    # --------------------------

    def mirror_match(self, row: Dict[str, Any], params: ReadParams) -> bool:
        if "author_id" not in params.filters and not row.get("is_published", True):
            return False
        return super().mirror_match(row, params)

    def synthesize(self, body: PostCreate, now: str) -> Dict[str, Any]:
        row = super().synthesize(body, now)
        row.update({"likes_count": 0, "comments_count": 0, "user_profiles": self._author_profile(body.author_id)})
        return row

    def _author_profile(self, author_id: str) -> Optional[Dict[str, Any]]:
        profiles = self.ctx.mirror.get(MIRROR_KEYS[ResourceKind.PROFILES])
        if not isinstance(profiles, list):
            return None
        for p in profiles:
            if isinstance(p, dict) and p.get("id") == author_id:
                return {k: p.get(k) for k in ("username", "full_name", "avatar_url")}
        return None
