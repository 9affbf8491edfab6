from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from tierdata.config import DataLayerConfig
from tierdata.context import DataContext
from tierdata.layer import DataLayer
from tierdata.reporter import RecordingReporter
from tierdata.seed import SeedBootstrapper
from tierdata.storage import InMemoryMirrorStore
from tierdata.types import TransientError

CONFIGURED = DataLayerConfig(
    supabase_url="https://project.supabase.co",
    supabase_anon_key="anon-test-key",
    api_base_url="https://api.example.test",
    owner_emails=("owner@example.com",),
)

OFFLINE = DataLayerConfig(owner_emails=("owner@example.com",))


class FakeTier:
    """
    Stand-in for PrimaryClient / SecondaryClient.

    Every method call is recorded in the shared `calls` list as
    (tier name, method, args, kwargs). A response may be a value, an exception
    instance (raised), or a callable producing either. Methods without a
    configured response behave like an unreachable server.
    """

    def __init__(self, name: str, calls: List[Tuple[str, str, tuple, dict]], **responses: Any) -> None:
        self._name = name
        self._calls = calls
        self._responses: Dict[str, Any] = dict(responses)

    def respond(self, method: str, response: Any) -> None:
        self._responses[method] = response

    def fail_everything(self) -> None:
        self._responses.clear()

    def __getattr__(self, method: str) -> Callable[..., Any]:
        if method.startswith("_"):
            raise AttributeError(method)

        async def call(*args: Any, **kwargs: Any) -> Any:
            self._calls.append((self._name, method, args, kwargs))
            if method not in self._responses:
                raise TransientError(f"{self._name} unreachable")
            response = self._responses[method]
            if callable(response) and not isinstance(response, type):
                response = response(*args, **kwargs)
            if isinstance(response, BaseException):
                raise response
            return response

        return call


def make_layer(
    *,
    primary: Optional[FakeTier] = None,
    secondary: Optional[FakeTier] = None,
    config: DataLayerConfig = CONFIGURED,
    mirror: Optional[InMemoryMirrorStore] = None,
    calls: Optional[list] = None,
) -> DataLayer:
    calls = calls if calls is not None else []
    store = mirror if mirror is not None else InMemoryMirrorStore()
    ctx = DataContext(
        config=config,
        primary=primary or FakeTier("primary", calls),
        secondary=secondary or FakeTier("secondary", calls),
        mirror=store,
        seeder=SeedBootstrapper(store),
        reporter=RecordingReporter(),
    )
    return DataLayer(ctx)


def tier_order(calls: list) -> List[str]:
    return [c[0] for c in calls]


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def offline_layer() -> DataLayer:
    """Real clients, no backend configured, in-memory mirror."""
    return DataLayer.build(OFFLINE, mirror=InMemoryMirrorStore(), reporter=RecordingReporter())
