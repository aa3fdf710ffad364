from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from dailies.api.deps import get_actor_id, get_version_service
from dailies.schemas.version import VersionCreate, VersionFilter, VersionOut, VersionUpdate
from dailies.services.file_store import UploadBlob
from dailies.services.version_service import PRIMARY, THUMBNAIL, VersionService

router = APIRouter()


async def _read_upload(file: UploadFile) -> UploadBlob:
    content = await file.read()
    return UploadBlob(
        data=content,
        content_type=file.content_type or "application/octet-stream",
        filename=file.filename or "upload",
    )


@router.post("/versions", response_model=VersionOut, status_code=201)
def create_version(
    payload: VersionCreate,
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    return service.create(payload, actor_id=actor_id)


@router.get("/versions", response_model=list[VersionOut])
def list_versions(
    filters: VersionFilter = Depends(),
    service: VersionService = Depends(get_version_service),
):
    return service.find_all(**filters.model_dump())


@router.get("/versions/code/{code}", response_model=VersionOut)
def get_version_by_code(code: str, service: VersionService = Depends(get_version_service)):
    return service.find_by_code(code)


@router.get("/versions/{version_id}", response_model=VersionOut)
def get_version(version_id: int, service: VersionService = Depends(get_version_service)):
    return service.find_by_id(version_id)


@router.patch("/versions/{version_id}", response_model=VersionOut)
def update_version(
    version_id: int,
    payload: VersionUpdate,
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    return service.update(version_id, payload, actor_id=actor_id)


@router.delete("/versions/{version_id}")
def delete_version(
    version_id: int,
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    service.remove(version_id, actor_id=actor_id)
    return {"status": "deleted"}


@router.post("/versions/{version_id}/file", response_model=VersionOut)
async def upload_version_file(
    version_id: int,
    file: UploadFile = File(...),
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    blob = await _read_upload(file)
    return await run_in_threadpool(service.attach_file, version_id, blob, PRIMARY, actor_id=actor_id)


@router.post("/versions/{version_id}/thumbnail", response_model=VersionOut)
async def upload_version_thumbnail(
    version_id: int,
    file: UploadFile = File(...),
    service: VersionService = Depends(get_version_service),
    actor_id: int | None = Depends(get_actor_id),
):
    blob = await _read_upload(file)
    return await run_in_threadpool(service.attach_file, version_id, blob, THUMBNAIL, actor_id=actor_id)
