"""Master API router, mounts all sub-routers."""

from fastapi import APIRouter

from jimeng_client.api.system import router as system_router
from jimeng_client.api.tools import router as tools_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(system_router, tags=["System"])
api_router.include_router(tools_router, tags=["Tools"])
