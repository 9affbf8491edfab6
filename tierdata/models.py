from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .types import RejectedError, ValidationError

M = TypeVar("M", bound=BaseModel)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _non_empty_text(v: Optional[str], name: str) -> Optional[str]:
    if v is None:
        return v
    s = str(v).strip()
    if not s:
        raise ValueError(f"{name} must be a non-empty string")
    return s


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


class Post(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    author_id: str
    title: Optional[str] = None
    content: str
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    likes_count: int = Field(0, ge=0)
    comments_count: int = Field(0, ge=0)
    is_published: bool = True
    created_at: str
    updated_at: Optional[str] = None

    # Author display fields joined in by the server / demo store
    user_profiles: Optional[Dict[str, Any]] = None

    @field_validator("likes_count", "comments_count", mode="before")
    @classmethod
    def _null_counts(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, v: Any) -> Any:
        return [] if v is None else v


class PostCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    author_id: str = Field(..., min_length=1, validation_alias=AliasChoices("author_id", "author"))
    title: Optional[str] = None
    content: str
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_published: bool = True

    @field_validator("content")
    @classmethod
    def _content(cls, v: str) -> str:
        return _non_empty_text(v, "content")  # type: ignore[return-value]

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: List[str]) -> List[str]:
        return [str(t).strip() for t in v if str(t).strip()]


class PostUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None

    @field_validator("content")
    @classmethod
    def _content(cls, v: Optional[str]) -> Optional[str]:
        return _non_empty_text(v, "content")


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------


class NotificationKind(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(..., min_length=1)
    user_id: str
    type: NotificationKind = NotificationKind.INFO
    title: str
    message: Optional[str] = None
    # Older rows use is_read
    read: bool = Field(False, validation_alias=AliasChoices("read", "is_read"))
    created_at: str


class NotificationCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    user_id: str = Field(..., min_length=1)
    type: NotificationKind = NotificationKind.INFO
    title: str
    message: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _non_empty_text(v, "title")  # type: ignore[return-value]


class NotificationUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    read: Optional[bool] = None
    title: Optional[str] = None
    message: Optional[str] = None


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------


class Profile(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    username: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    user_type: Optional[str] = None
    tier: str = "free"
    level: int = Field(1, ge=1)
    total_xp: int = Field(0, ge=0)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("level", "total_xp", mode="before")
    @classmethod
    def _null_ints(cls, v: Any, info: pydantic.ValidationInfo) -> Any:
        if v is None:
            return 1 if info.field_name == "level" else 0
        return v


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    user_type: Optional[str] = None
    tier: Optional[str] = None
    level: Optional[int] = Field(None, ge=1)
    total_xp: Optional[int] = Field(None, ge=0)

    @field_validator("username")
    @classmethod
    def _username(cls, v: Optional[str]) -> Optional[str]:
        return _non_empty_text(v, "username")


class ProfileEnsure(ProfileUpdate):
    """Create-or-merge payload: the subject id plus any display attributes."""

    id: str = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Roles
# -----------------------------------------------------------------------------


class RoleAssignment(BaseModel):
    user_id: str = Field(..., min_length=1)
    roles: List[str]

    @field_validator("roles")
    @classmethod
    def _roles(cls, v: List[str]) -> List[str]:
        out: List[str] = []
        for r in v:
            s = str(r).strip()
            if s and s not in out:
                out.append(s)
        if not out:
            raise ValueError("roles must contain at least one role")
        return out


# -----------------------------------------------------------------------------
# Edge validation
# -----------------------------------------------------------------------------


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc or 'payload'}: {err.get('msg')}")
    return "; ".join(parts)


def validate_payload(model: Type[M], payload: Any) -> M:
    """Validate a caller payload. Raises ValidationError (propagates to caller)."""
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, dict):
        raise ValidationError(f"{model.__name__} payload must be an object, got {type(payload).__name__}")
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {_describe(exc)}") from exc


def validate_row(model: Type[M], row: Any, source: str) -> M:
    """Validate one remote row. Malformed remote data is a tier failure, not a caller error."""
    if not isinstance(row, dict):
        raise RejectedError(f"{source} returned a non-object {model.__name__} row")
    try:
        return model.model_validate(row)
    except pydantic.ValidationError as exc:
        raise RejectedError(f"{source} returned a malformed {model.__name__}: {_describe(exc)}") from exc


def validate_rows(model: Type[M], rows: Any, source: str) -> List[M]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise RejectedError(f"{source} returned {type(rows).__name__}, expected a list of {model.__name__}")
    return [validate_row(model, r, source) for r in rows]


def dump(items: Iterable[BaseModel]) -> List[Dict[str, Any]]:
    return [i.model_dump(mode="json") for i in items]
