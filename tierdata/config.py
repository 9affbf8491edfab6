from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

# ----------------------------
# Environment & configuration
# ----------------------------
# This is the ONLY place env vars are read. Everything downstream receives a
# DataLayerConfig through the DataContext.

# Owner allow-list comes only from TIERDATA_OWNER_EMAILS; unset = no owner shortcut.
DEFAULT_OWNER_EMAILS: Tuple[str, ...] = ()
DEFAULT_HTTP_TIMEOUT = 10.0

# Values the web client ships with when no backend has been provisioned.
PLACEHOLDER_URLS = {"https://demo.supabase.co", "http://localhost:54321/demo"}
PLACEHOLDER_KEYS = {"demo-key", "anon-key", "changeme"}


def _env(name: str) -> str:
    return (os.getenv(name, "") or "").strip()


def _first_env(*names: str) -> str:
    for name in names:
        v = _env(name)
        if v:
            return v
    return ""


def _float_env(name: str, default: float) -> float:
    try:
        raw = _env(name)
        return float(raw) if raw else float(default)
    except Exception:
        return float(default)


def _is_placeholder(value: str, known: set) -> bool:
    v = (value or "").strip()
    if not v:
        return True
    return v in known or "your-" in v.lower()


@dataclass(frozen=True)
class DataLayerConfig:
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Signed-in user's session token. Optional: anon key is used when absent.
    access_token: Optional[str] = None

    # Privileged server (service-role) base URL. Empty = no primary tier.
    api_base_url: str = ""

    # SQLite file for the Local Mirror. None = in-memory mirror.
    mirror_path: Optional[str] = None

    owner_emails: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_OWNER_EMAILS)
    timeout: float = DEFAULT_HTTP_TIMEOUT

    # Guards the /data HTTP surface. Unset = open access.
    service_api_key: Optional[str] = None

    @property
    def backend_configured(self) -> bool:
        """Credentials for the shared data service are present and not placeholders."""
        if _is_placeholder(self.supabase_url, PLACEHOLDER_URLS):
            return False
        if _is_placeholder(self.supabase_anon_key, PLACEHOLDER_KEYS):
            return False
        return self.supabase_url.startswith(("http://", "https://"))

    @property
    def primary_configured(self) -> bool:
        return self.backend_configured and bool(self.api_base_url)

    @property
    def rest_base(self) -> str:
        return self.supabase_url.rstrip("/") + "/rest/v1"

    def is_owner_email(self, email: Optional[str]) -> bool:
        e = (email or "").strip().lower()
        if not e:
            return False
        return e in {o.strip().lower() for o in self.owner_emails if o.strip()}


def load_config() -> DataLayerConfig:
    """
    Build the config from the process environment.

    SUPABASE_* falls back to the VITE_SUPABASE_* names so a single .env can be
    shared with the web client.
    """
    owners_raw = _env("TIERDATA_OWNER_EMAILS")
    owners = tuple(o.strip() for o in owners_raw.split(",") if o.strip()) if owners_raw else DEFAULT_OWNER_EMAILS

    return DataLayerConfig(
        supabase_url=_first_env("SUPABASE_URL", "VITE_SUPABASE_URL"),
        supabase_anon_key=_first_env("SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"),
        access_token=_env("TIERDATA_ACCESS_TOKEN") or None,
        api_base_url=_env("TIERDATA_API_BASE_URL").rstrip("/"),
        mirror_path=_env("TIERDATA_MIRROR_PATH") or None,
        owner_emails=owners,
        timeout=_float_env("TIERDATA_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        service_api_key=_env("TIERDATA_API_KEY") or None,
    )
