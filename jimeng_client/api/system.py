"""Server info endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

import jimeng_client
from jimeng_client.config import Settings, get_settings

router = APIRouter()


@router.get("/info")
async def info(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Report version, endpoint and whether credentials are configured."""
    return {
        "name": "jimeng-client",
        "version": jimeng_client.__version__,
        "endpoint": settings.JIMENG_ENDPOINT,
        "region": settings.JIMENG_REGION,
        "credentials": "configured" if settings.has_credentials else "missing",
        "upload_enabled": settings.JIMENG_ENABLE_UPLOAD,
    }
