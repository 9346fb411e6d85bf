"""Jimeng tool server: FastAPI application entry point.

Run with:
    uvicorn jimeng_client.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from jimeng_client.api.router import api_router
from jimeng_client.config import configure_logging, get_settings

settings = get_settings()

configure_logging(settings.JIMENG_DEBUG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration on startup."""
    logger.info("Jimeng tool server starting up...")
    logger.info("Endpoint: %s (region=%s)", settings.JIMENG_ENDPOINT, settings.JIMENG_REGION)
    if not settings.has_credentials:
        logger.warning("JIMENG_ACCESS_KEY and JIMENG_SECRET_KEY are not set; tools will return errors")
    yield
    logger.info("Jimeng tool server shut down")


app = FastAPI(title="Jimeng Tool Server", lifespan=lifespan)
app.include_router(api_router)
