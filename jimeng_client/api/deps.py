"""FastAPI dependencies."""

from __future__ import annotations

import logging

from fastapi import Depends

from jimeng_client.config import Settings, get_settings
from jimeng_client.services.task_client import JimengClient

logger = logging.getLogger(__name__)


def get_client(settings: Settings = Depends(get_settings)) -> JimengClient | None:
    """Build a client from settings; None when credentials are not configured."""
    if not settings.has_credentials:
        logger.warning("JIMENG_ACCESS_KEY / JIMENG_SECRET_KEY not set, tool calls will fail")
        return None
    return settings.create_client()
