from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from photobooth.api.dependencies import get_bridge, get_photo_storage
from photobooth.models.session import SavePhotoRequest
from photobooth.services.bridge import PhotoboothBridge
from photobooth.services.storage import PhotoStorage

router = APIRouter(prefix="/photos", tags=["photos"])


@router.post("")
async def save_photo_file(
        request: SavePhotoRequest,
        bridge: PhotoboothBridge = Depends(get_bridge),
):
    return bridge.save_photo_file(request.image, request.file_name)


@router.get("/{filename}")
async def download_photo(filename: str, storage: PhotoStorage = Depends(get_photo_storage)):
    filepath = storage.path_for(filename)
    if not filepath.is_file():
        raise HTTPException(status_code=404, detail="Photo not found")

    return FileResponse(filepath, media_type="image/png", filename=filepath.name)


@router.get("")
async def list_photos(storage: PhotoStorage = Depends(get_photo_storage)):
    return {"photos": storage.list_photos()}
