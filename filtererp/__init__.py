"""Application factory and top-level wiring for the Filter ERP service.

Configuration, database tables, middlewares, error handlers and the API
routers are brought together here. ``filtererp.main`` adds logging, metrics
and the health check on top.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.errors import register_exception_handlers
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the SQLAlchemy models registers them with the metadata so
# ``create_all`` knows about every table.
from .models import catalog as _catalog  # noqa: F401
from .models import inventory as _inventory  # noqa: F401
from .models import order as _order  # noqa: F401
from .models import purchase as _purchase  # noqa: F401
from .models import user as _user  # noqa: F401


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)

    Base.metadata.create_all(bind=engine)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    from .routers import api_auth, api_catalog, api_orders, api_purchases

    app.include_router(api_auth.router)
    app.include_router(api_catalog.products_router)
    app.include_router(api_catalog.materials_router)
    app.include_router(api_orders.router)
    app.include_router(api_purchases.router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
