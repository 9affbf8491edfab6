from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from .clients.primary import PrimaryClient
from .clients.secondary import SecondaryClient
from .config import DataLayerConfig, load_config
from .reporter import Reporter
from .seed import SeedBootstrapper
from .storage import MirrorStore, open_mirror


@dataclass
class DataContext:
    """
    Everything a resource service needs, passed in explicitly.

    `primary` / `secondary` are duck-typed: tests swap in fakes exposing the
    same coroutine methods.
    """

    config: DataLayerConfig
    primary: Any
    secondary: Any
    mirror: MirrorStore
    seeder: SeedBootstrapper
    reporter: Reporter = field(default_factory=Reporter)

    @property
    def primary_enabled(self) -> bool:
        return self.config.primary_configured

    @property
    def secondary_enabled(self) -> bool:
        return self.config.backend_configured


def build_context(
    config: Optional[DataLayerConfig] = None,
    *,
    mirror: Optional[MirrorStore] = None,
    reporter: Optional[Reporter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DataContext:
    cfg = config or load_config()
    store = mirror if mirror is not None else open_mirror(cfg.mirror_path)
    return DataContext(
        config=cfg,
        primary=PrimaryClient(cfg, transport=transport),
        secondary=SecondaryClient(cfg, transport=transport),
        mirror=store,
        seeder=SeedBootstrapper(store),
        reporter=reporter or Reporter(),
    )
