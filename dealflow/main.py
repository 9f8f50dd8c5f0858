"""Application entrypoint for the FastAPI service."""

from __future__ import annotations

from fastapi import FastAPI

from dealflow.api.v1.router import get_api_router
from dealflow.core.config import get_config
from dealflow.core.startup import bootstrap


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION)
    app.include_router(get_api_router())

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn dealflow.main:app`.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    bootstrap()
    cfg = get_config()
    uvicorn.run("dealflow.main:app", host=cfg.API_HOST, port=cfg.API_PORT)
