# main.py

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from config import Settings, load_settings
from dispatcher import Dispatcher, Executor
from executor import execute_script
from logging_config import setup_logging

# Routers
from routers.health import router as health_router
from routers.webhook import router as webhook_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, executor: Optional[Executor] = None) -> FastAPI:
    """
    Builds the application around a repository list read once at startup.
    """
    if settings is None:
        settings = load_settings()

    # Initialize logging once
    setup_logging(settings.debug, settings.log_db_path)
    logger.info("Starting the HookRelay application...")

    app = FastAPI(
        title="HookRelay",
        description="Signed GitHub push webhooks to local deploy scripts",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None
    )
    app.state.settings = settings
    app.state.dispatcher = Dispatcher(settings.repositories, executor or execute_script)

    app.include_router(health_router)
    app.include_router(webhook_router)
    return app


# Serve with `python main.py` or `uvicorn main:create_app --factory`.
if __name__ == "__main__":
    app = create_app()
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
