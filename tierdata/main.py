from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import DataLayerConfig, load_config
from .layer import DataLayer
from .router import router as data_router


def create_app(layer: Optional[DataLayer] = None, config: Optional[DataLayerConfig] = None) -> FastAPI:
    """Build the HTTP app. Tests pass a prebuilt layer; otherwise it comes from the environment."""
    logging.basicConfig(level=logging.INFO)

    app = FastAPI(
        title="tierdata",
        version="1.0.0",
    )

    # Browser clients call this directly. Adjust in production if needed.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.data_layer = layer or DataLayer.build(config or load_config())
    app.include_router(data_router)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        cfg = app.state.data_layer.ctx.config
        return {
            "ok": True,
            "backend_configured": cfg.backend_configured,
            "primary_configured": cfg.primary_configured,
            "mirror": type(app.state.data_layer.ctx.mirror).__name__,
        }

    return app
