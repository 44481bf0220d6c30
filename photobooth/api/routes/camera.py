import logging

from fastapi import APIRouter, Depends, HTTPException

from photobooth.api.dependencies import get_camera_service, get_session_state, get_websocket_manager
from photobooth.models.session import CameraStatusResponse
from photobooth.services.camera import CameraService
from photobooth.services.session import SessionState
from photobooth.services.websocket import WebSocketManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/camera", tags=["camera"])


def _status(camera: CameraService) -> CameraStatusResponse:
    return CameraStatusResponse(
        is_active=camera.is_active,
        error=camera.error,
        countdown=camera.countdown,
        photo_count=len(camera.captured_photos),
        required_photos=camera.required_photos,
        retake_count=camera.retake_count,
        max_retake_count=camera.settings.max_retake_count,
        can_capture=camera.can_capture,
        can_retake=camera.can_retake,
        can_advance=camera.can_advance,
    )


@router.get("/status", response_model=CameraStatusResponse)
async def camera_status(
        camera: CameraService = Depends(get_camera_service),
        session: SessionState = Depends(get_session_state),
):
    camera.bind(session)
    return _status(camera)


@router.post("/start", response_model=CameraStatusResponse)
async def start_camera(
        camera: CameraService = Depends(get_camera_service),
        session: SessionState = Depends(get_session_state),
):
    camera.bind(session)
    camera.start_camera()
    return _status(camera)


@router.post("/capture", response_model=CameraStatusResponse)
async def capture_photo(
        camera: CameraService = Depends(get_camera_service),
        session: SessionState = Depends(get_session_state),
        websocket_manager: WebSocketManager = Depends(get_websocket_manager),
):
    camera.bind(session)
    if await camera.capture():
        await websocket_manager.broadcast({
            "type": "photo_captured",
            "session_id": session.session_id,
            "photo_count": len(camera.captured_photos),
            "required_photos": camera.required_photos,
        })
    return _status(camera)


@router.post("/retake", response_model=CameraStatusResponse)
async def retake_photo(
        camera: CameraService = Depends(get_camera_service),
        session: SessionState = Depends(get_session_state),
):
    camera.bind(session)
    camera.retake()
    return _status(camera)


@router.post("/advance", response_model=CameraStatusResponse)
async def advance(
        camera: CameraService = Depends(get_camera_service),
        session: SessionState = Depends(get_session_state),
):
    camera.bind(session)
    try:
        camera.advance(session)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Session %s advanced with %d photo(s)", session.session_id, len(session.photos))
    return _status(camera)
