from fastapi import APIRouter
from dailies.api import composite, files, statuses, versions

api_router = APIRouter()
api_router.include_router(versions.router, tags=["versions"])
api_router.include_router(composite.router, tags=["composite"])
api_router.include_router(statuses.router, tags=["statuses"])
api_router.include_router(files.router, tags=["files"])
