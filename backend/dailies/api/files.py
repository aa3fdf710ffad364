import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from dailies.api.deps import get_store
from dailies.core.errors import StorageError
from dailies.services.file_store import LocalFileStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/files/{bucket}/{path:path}")
def get_file(
    bucket: str,
    path: str,
    expires: int | None = None,
    signature: str | None = None,
    store: LocalFileStore = Depends(get_store),
):
    if not store.verify_signature(bucket, path, expires, signature):
        logger.warning("Rejected file request with invalid signature", extra={"bucket": bucket, "path": path})
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        target = store.open_path(bucket, path)
    except StorageError:
        raise HTTPException(status_code=404, detail="File not found") from None
    if not target.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(target, filename=target.name)
