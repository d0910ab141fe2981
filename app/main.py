# app/main.py

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from .auth import AuthService
from .config import Settings, configure_logging, get_settings
from .db import init_db, make_engine
from .rate_limit import RateLimiter
from .routers import (
    appointments_routes, auth_routes, catalog_routes, content_routes, users_routes,
)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None,
               auth: Optional[AuthService] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.engine)
        yield

    app = FastAPI(title=settings.salon_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine or make_engine(settings.database_url)
    app.state.auth = auth or AuthService(settings)
    app.state.rate_limiter = RateLimiter()

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    app.include_router(auth_routes.router)
    app.include_router(users_routes.router)
    app.include_router(catalog_routes.router)
    app.include_router(appointments_routes.router)
    app.include_router(content_routes.router)
    return app


app = create_app()
