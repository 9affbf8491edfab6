"""
tierdata/seed.py

Demo datasets and the Seed Bootstrapper.

Contract:
- A kind's dataset is written only when the mirror holds nothing under its key.
- Once seeded, a key is never overwritten here, so local edits survive.
- Timestamps are fixed so a reseed after clear_demo_state() is byte-identical.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from .storage.base import MirrorStore
from .types import MIRROR_KEYS, ResourceKind

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user-123"


# ----------------------------
# Demo datasets
# ----------------------------

DEMO_PROFILES: List[Dict[str, Any]] = [
    {
        "id": DEMO_USER_ID,
        "username": "demo_developer",
        "full_name": "Demo Developer",
        "user_type": "game_developer",
        "bio": "Passionate game developer exploring the AeThex ecosystem",
        "location": "Digital Realm",
        "avatar_url": None,
        "github_url": "https://github.com/demo-developer",
        "twitter_url": "https://twitter.com/demo_dev",
        "tier": "pro",
        "level": 5,
        "total_xp": 1250,
        "created_at": "2024-01-02T09:00:00Z",
        "updated_at": "2024-01-02T09:00:00Z",
    },
    {
        "id": "demo-mentor-456",
        "username": "pixel_mentor",
        "full_name": "Riley Mentor",
        "user_type": "community_member",
        "bio": "Shader nerd. Happy to review your lighting passes.",
        "location": "Lisbon",
        "avatar_url": None,
        "github_url": "https://github.com/pixel-mentor",
        "twitter_url": None,
        "tier": "free",
        "level": 9,
        "total_xp": 4200,
        "created_at": "2023-11-20T14:30:00Z",
        "updated_at": "2024-02-11T08:15:00Z",
    },
    {
        "id": "demo-studio-789",
        "username": "nightowl_studio",
        "full_name": "Night Owl Studio",
        "user_type": "client",
        "bio": "Indie studio hiring for a cozy farming sim.",
        "location": "Montreal",
        "avatar_url": None,
        "github_url": None,
        "twitter_url": "https://twitter.com/nightowlstudio",
        "tier": "business",
        "level": 3,
        "total_xp": 640,
        "created_at": "2024-02-01T17:45:00Z",
        "updated_at": "2024-02-01T17:45:00Z",
    },
]


def _author(profile_id: str) -> Dict[str, Any]:
    p = next(p for p in DEMO_PROFILES if p["id"] == profile_id)
    return {"username": p["username"], "full_name": p["full_name"], "avatar_url": p["avatar_url"]}


DEMO_POSTS: List[Dict[str, Any]] = [
    {
        "id": "demo-post-5",
        "author_id": "demo-studio-789",
        "title": "We're hiring a gameplay programmer",
        "content": "Remote-friendly, Godot or AeThex Engine experience welcome. DM us your portfolio!",
        "category": "jobs",
        "tags": ["hiring", "gameplay"],
        "likes_count": 12,
        "comments_count": 4,
        "is_published": True,
        "created_at": "2024-03-05T16:20:00Z",
        "updated_at": "2024-03-05T16:20:00Z",
        "user_profiles": _author("demo-studio-789"),
    },
    {
        "id": "demo-post-4",
        "author_id": DEMO_USER_ID,
        "title": "Quantum Quest devlog #3",
        "content": "Got the portal shader running at 60fps on mid-range laptops. Next up: save slots.",
        "category": "devlog",
        "tags": ["devlog", "shaders"],
        "likes_count": 27,
        "comments_count": 6,
        "is_published": True,
        "created_at": "2024-03-03T11:05:00Z",
        "updated_at": "2024-03-03T11:05:00Z",
        "user_profiles": _author(DEMO_USER_ID),
    },
    {
        "id": "demo-post-3",
        "author_id": "demo-mentor-456",
        "title": "Office hours this Friday",
        "content": "Bring your lighting questions. I'll be walking through baked vs realtime GI.",
        "category": "events",
        "tags": ["mentorship", "lighting"],
        "likes_count": 18,
        "comments_count": 2,
        "is_published": True,
        "created_at": "2024-02-28T19:00:00Z",
        "updated_at": "2024-02-28T19:00:00Z",
        "user_profiles": _author("demo-mentor-456"),
    },
    {
        "id": "demo-post-2",
        "author_id": DEMO_USER_ID,
        "title": "Neon Runner is out!",
        "content": "After four months, Neon Runner is finished. Thanks to everyone who playtested.",
        "category": "showcase",
        "tags": ["release", "runner"],
        "likes_count": 41,
        "comments_count": 9,
        "is_published": True,
        "created_at": "2024-02-14T10:30:00Z",
        "updated_at": "2024-02-14T10:30:00Z",
        "user_profiles": _author(DEMO_USER_ID),
    },
    {
        "id": "demo-post-1",
        "author_id": "demo-mentor-456",
        "title": "Welcome to the community",
        "content": "Introduce yourself below and tell us what you're building this season.",
        "category": "general",
        "tags": ["welcome"],
        "likes_count": 55,
        "comments_count": 23,
        "is_published": True,
        "created_at": "2024-01-05T08:00:00Z",
        "updated_at": "2024-01-05T08:00:00Z",
        "user_profiles": _author("demo-mentor-456"),
    },
]

DEMO_NOTIFICATIONS: List[Dict[str, Any]] = [
    {
        "id": "demo-notif-3",
        "user_id": DEMO_USER_ID,
        "type": "success",
        "title": "Achievement Unlocked: First Project",
        "message": "You've earned 150 XP!",
        "read": False,
        "created_at": "2024-03-04T12:00:00Z",
    },
    {
        "id": "demo-notif-2",
        "user_id": DEMO_USER_ID,
        "type": "info",
        "title": "Riley Mentor commented on your post",
        "message": "Nice work on the portal shader!",
        "read": False,
        "created_at": "2024-03-03T13:40:00Z",
    },
    {
        "id": "demo-notif-1",
        "user_id": DEMO_USER_ID,
        "type": "success",
        "title": "Welcome to AeThex!",
        "message": "You've completed your profile setup. Let's get started!",
        "read": True,
        "created_at": "2024-01-02T09:05:00Z",
    },
]

DEMO_ROLES: Dict[str, List[str]] = {
    DEMO_USER_ID: ["member", "creator"],
    "demo-mentor-456": ["member", "mentor"],
    "demo-studio-789": ["member", "client"],
}

DEMO_DATASETS: Dict[ResourceKind, Any] = {
    ResourceKind.POSTS: DEMO_POSTS,
    ResourceKind.NOTIFICATIONS: DEMO_NOTIFICATIONS,
    ResourceKind.PROFILES: DEMO_PROFILES,
    ResourceKind.ROLES: DEMO_ROLES,
}


# ----------------------------
# Bootstrapper
# ----------------------------

class SeedBootstrapper:
    def __init__(self, mirror: MirrorStore, datasets: Optional[Dict[ResourceKind, Any]] = None) -> None:
        self.mirror = mirror
        self.datasets = dict(DEMO_DATASETS if datasets is None else datasets)

    def dataset(self, kind: ResourceKind) -> Any:
        return copy.deepcopy(self.datasets[ResourceKind(kind)])

    def ensure_seeded(self, kind: ResourceKind) -> bool:
        """Write the demo dataset for `kind` if its key is absent. Returns True when it wrote."""
        kind = ResourceKind(kind)
        key = MIRROR_KEYS[kind]
        if self.mirror.get(key) is not None:
            return False
        # Two racing callers may both get here; both write the same payload.
        self.mirror.set(key, self.dataset(kind))
        logger.info("Seeded demo data for %s under %r", kind.value, key)
        return True

    def ensure_all_seeded(self) -> List[ResourceKind]:
        return [k for k in self.datasets if self.ensure_seeded(k)]

    def clear_demo_state(self, kinds: Optional[Iterable[ResourceKind]] = None) -> None:
        """Remove every resource key from the mirror in one storage operation."""
        targets = [MIRROR_KEYS[ResourceKind(k)] for k in (kinds or MIRROR_KEYS.keys())]
        self.mirror.remove_many(targets)
        logger.info("Cleared demo state: %s", ", ".join(targets))
