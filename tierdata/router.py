from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from .layer import DataLayer
from .models import (
    Notification,
    NotificationCreate,
    Post,
    PostCreate,
    PostUpdate,
    Profile,
    ProfileUpdate,
)
from .services.notifications import unread_count
from .services.roles import has_admin_role
from .types import ValidationError

# -----------------------------------------------------------------------------
# Data router
# -----------------------------------------------------------------------------
# Thin HTTP surface over DataLayer for out-of-process callers (bot commands,
# admin tools). Reads never fail because a tier is down; 422 means the caller
# sent an invalid payload.
# -----------------------------------------------------------------------------


def get_data_layer(request: Request) -> DataLayer:
    layer = getattr(request.app.state, "data_layer", None)
    if layer is None:
        raise HTTPException(status_code=503, detail="Data layer not initialised")
    return layer


def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None),
) -> None:
    """No-op unless TIERDATA_API_KEY is set."""
    layer = get_data_layer(request)
    expected = layer.ctx.config.service_api_key
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


router = APIRouter(prefix="/data", tags=["data"], dependencies=[Depends(require_api_key)])


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------


class NotificationListResponse(BaseModel):
    items: List[Notification]
    unread: int


class RolesResponse(BaseModel):
    user_id: str
    roles: List[str]
    is_admin: bool


class RolesUpdateRequest(BaseModel):
    roles: List[str] = Field(default_factory=list, description="Role names; empty means the default role")


class DemoStateResponse(BaseModel):
    ok: bool
    seeded: List[str] = Field(default_factory=list)


def _unprocessable(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(exc))


def _provided(body: Optional[BaseModel]) -> Dict[str, Any]:
    """Only the fields the client actually sent, plus any extra profile attributes."""
    if body is None:
        return {}
    fields = body.model_dump(mode="json", exclude_unset=True)
    fields.update(body.model_extra or {})
    return fields


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


@router.get("/posts", response_model=List[Post])
async def list_posts(
    limit: int = Query(10, ge=1, le=50),
    layer: DataLayer = Depends(get_data_layer),
) -> List[Post]:
    return await layer.posts.list_posts(limit=limit)


@router.get("/users/{user_id}/posts", response_model=List[Post])
async def list_user_posts(user_id: str, layer: DataLayer = Depends(get_data_layer)) -> List[Post]:
    return await layer.posts.list_user_posts(user_id)


@router.post("/posts", response_model=Post)
async def create_post(
    payload: PostCreate,
    layer: DataLayer = Depends(get_data_layer),
) -> Post:
    try:
        return await layer.posts.create_post(payload)
    except ValidationError as exc:
        raise _unprocessable(exc) from exc


@router.patch("/posts/{post_id}", response_model=Post)
async def update_post(
    post_id: str,
    changes: PostUpdate,
    layer: DataLayer = Depends(get_data_layer),
) -> Post:
    try:
        post = await layer.posts.update_post(post_id, changes)
    except ValidationError as exc:
        raise _unprocessable(exc) from exc
    if post is None:
        raise HTTPException(status_code=404, detail=f"Post not found for id={post_id}")
    return post


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------


@router.get("/users/{user_id}/notifications", response_model=NotificationListResponse)
async def list_notifications(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    layer: DataLayer = Depends(get_data_layer),
) -> NotificationListResponse:
    items = await layer.notifications.list_for_user(user_id, limit=limit)
    return NotificationListResponse(items=items, unread=unread_count(items))


@router.post("/notifications", response_model=Notification)
async def create_notification(
    payload: NotificationCreate,
    layer: DataLayer = Depends(get_data_layer),
) -> Notification:
    try:
        return await layer.notifications.create(payload)
    except ValidationError as exc:
        raise _unprocessable(exc) from exc


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(notification_id: str, layer: DataLayer = Depends(get_data_layer)) -> Notification:
    n = await layer.notifications.mark_read(notification_id)
    if n is None:
        raise HTTPException(status_code=404, detail=f"Notification not found for id={notification_id}")
    return n


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------


@router.get("/profiles/{user_id}", response_model=Profile)
async def get_profile(user_id: str, layer: DataLayer = Depends(get_data_layer)) -> Profile:
    profile = await layer.profiles.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Profile not found for id={user_id}")
    return profile


@router.put("/profiles/{user_id}", response_model=Profile)
async def ensure_profile(
    user_id: str,
    fields: Optional[ProfileUpdate] = Body(default=None),
    layer: DataLayer = Depends(get_data_layer),
) -> Profile:
    try:
        return await layer.profiles.ensure_profile(user_id, _provided(fields))
    except ValidationError as exc:
        raise _unprocessable(exc) from exc


# -----------------------------------------------------------------------------
# Roles
# -----------------------------------------------------------------------------


@router.get("/users/{user_id}/roles", response_model=RolesResponse)
async def get_roles(
    user_id: str,
    email: Optional[str] = Query(None, description="Verified email of the signed-in user"),
    layer: DataLayer = Depends(get_data_layer),
) -> RolesResponse:
    roles = await layer.roles.resolve_roles(user_id, email=email)
    return RolesResponse(user_id=user_id, roles=sorted(roles), is_admin=has_admin_role(roles))


@router.put("/users/{user_id}/roles", response_model=RolesResponse)
async def set_roles(
    user_id: str,
    req: RolesUpdateRequest,
    layer: DataLayer = Depends(get_data_layer),
) -> RolesResponse:
    assignment = await layer.roles.set_roles(user_id, req.roles)
    return RolesResponse(user_id=user_id, roles=sorted(assignment.roles), is_admin=has_admin_role(assignment.roles))


# -----------------------------------------------------------------------------
# Demo state
# -----------------------------------------------------------------------------


@router.post("/demo/seed", response_model=DemoStateResponse)
def seed_demo(layer: DataLayer = Depends(get_data_layer)) -> DemoStateResponse:
    seeded = layer.seed_demo_data()
    return DemoStateResponse(ok=True, seeded=[k.value for k in seeded])


@router.post("/demo/clear", response_model=DemoStateResponse)
def clear_demo(layer: DataLayer = Depends(get_data_layer)) -> DemoStateResponse:
    layer.clear_demo_state()
    return DemoStateResponse(ok=True)
