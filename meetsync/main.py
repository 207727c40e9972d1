# meetsync/main.py
from fastapi import FastAPI

from meetsync.api.routes import health, internal
from meetsync.core.config import get_settings
from meetsync.core.logging import configure_logging
from meetsync.db.session import init_db


def create_app() -> FastAPI:
    """
    Application factory for the meetsync service.
    """
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Books meetings across a user's connected calendar and video\n"
            "providers, keeps provider references in sync on reschedule, and\n"
            "aggregates busy times for conflict checks."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(internal.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        await init_db()

    return app


app = create_app()
