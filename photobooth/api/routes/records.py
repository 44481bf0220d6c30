import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from photobooth.api.dependencies import get_bridge
from photobooth.db.records import utc_now
from photobooth.models.session import PhotoResultRecord, SaveRecordRequest
from photobooth.services.bridge import PhotoboothBridge
from photobooth.services.export import export_file_name, records_to_csv

router = APIRouter(prefix="/records", tags=["records"])


@router.post("")
async def save_photo_result(
        request: SaveRecordRequest,
        bridge: PhotoboothBridge = Depends(get_bridge),
):
    now = utc_now()
    record = PhotoResultRecord(
        id=request.id or str(uuid.uuid4()),
        photo_path=request.photo_path,
        selection=request.selection,
        user_info=request.user_info,
        created_at=request.created_at or now,
        updated_at=request.updated_at or now,
    )
    return bridge.save_photo_result(record)


@router.get("")
async def get_all_photo_results(bridge: PhotoboothBridge = Depends(get_bridge)):
    return bridge.get_all_photo_results()


@router.get("/export")
async def export_photo_results(bridge: PhotoboothBridge = Depends(get_bridge)):
    result = bridge.get_all_photo_results()
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)

    return Response(
        content=records_to_csv(result.data),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_file_name()}"'},
    )


@router.get("/{record_id}")
async def get_photo_result(record_id: str, bridge: PhotoboothBridge = Depends(get_bridge)):
    return bridge.get_photo_result_by_id(record_id)
