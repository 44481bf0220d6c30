import asyncio
import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from photobooth.api.dependencies import (
    get_bridge,
    get_camera_service,
    get_compositor,
    get_quiz,
    get_remote_client,
    get_session_state,
    get_settings,
    get_websocket_manager,
)
from photobooth.config import Settings
from photobooth.content import Question, QUESTIONS
from photobooth.db.records import new_record
from photobooth.exceptions import AssetLoadError, InvalidImageError, RemoteServiceError
from photobooth.models.session import (
    FinalizeRequest,
    QuizAnswersRequest,
    QuizResult,
    SessionCompleteResponse,
    SessionFinalizeResponse,
    SessionStatusResponse,
    ThemeSelection,
    UserInfo,
)
from photobooth.services.bridge import PhotoboothBridge
from photobooth.services.camera import CameraService
from photobooth.services.compositor import CompositorService, decode_image, encode_png
from photobooth.services.quiz import QuizSession
from photobooth.services.remote import validate_upload, validate_user_info
from photobooth.services.session import SessionState
from photobooth.services.storage import build_file_name
from photobooth.services.websocket import WebSocketManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


def _status(session: SessionState) -> SessionStatusResponse:
    return SessionStatusResponse(
        session_id=session.session_id,
        photo_count=len(session.photos),
        required_photos=session.required_photo_count,
        selection=session.selection,
        user_info=session.user_info,
        has_final_photo=session.final_photo is not None,
        photo_path=session.photo_path,
        record_id=session.record_id,
    )


@router.get("/status", response_model=SessionStatusResponse)
async def get_session_status(session: SessionState = Depends(get_session_state)):
    return _status(session)


@router.post("/theme", response_model=SessionStatusResponse)
async def select_theme(
        selection: ThemeSelection,
        session: SessionState = Depends(get_session_state),
):
    try:
        session.set_selection(selection)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Session %s selected theme %s", session.session_id, selection.theme.value)
    return _status(session)


@router.get("/quiz", response_model=List[Question])
async def get_quiz_questions():
    return QUESTIONS


@router.post("/quiz", response_model=SessionStatusResponse)
async def submit_quiz(
        request: QuizAnswersRequest,
        quiz: QuizSession = Depends(get_quiz),
        session: SessionState = Depends(get_session_state),
):
    try:
        archetype = quiz.submit(request.answers)
        session.set_selection(QuizResult(archetype=archetype))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Session %s quiz result %s", session.session_id, archetype.value)
    return _status(session)


@router.post("/user-info", response_model=SessionStatusResponse)
async def set_user_info(
        user_info: UserInfo,
        session: SessionState = Depends(get_session_state),
):
    session.user_info = user_info
    return _status(session)


@router.post("/finalize", response_model=SessionFinalizeResponse)
async def finalize_session(
        http_request: Request,
        request: FinalizeRequest = FinalizeRequest(),
        session: SessionState = Depends(get_session_state),
        compositor: CompositorService = Depends(get_compositor),
):
    ai_image = None
    if request.use_ai:
        if not isinstance(session.selection, ThemeSelection) or not session.photos:
            raise HTTPException(status_code=400, detail="AI generation needs a racing theme and a photo")
        remote = get_remote_client(http_request)
        try:
            generated = await remote.generate_image(encode_png(session.photos[0]), session.selection.theme.value)
            ai_image = decode_image(generated)
        except (RemoteServiceError, AssetLoadError) as e:
            raise HTTPException(status_code=502, detail=str(e))

    try:
        final_photo = await asyncio.to_thread(compositor.composite, session, ai_image=ai_image)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AssetLoadError as e:
        logger.error("Compositing failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return SessionFinalizeResponse(success=True, final_photo=final_photo, ai_generated=ai_image is not None)


@router.post("/complete", response_model=SessionCompleteResponse)
async def complete_session(
        auto_print: bool = True,
        session: SessionState = Depends(get_session_state),
        bridge: PhotoboothBridge = Depends(get_bridge),
):
    """Persist the final photo and its record, then print it.

    Printing only starts once both writes have succeeded; a print failure
    leaves the saved record in place.
    """
    if not session.final_photo or session.selection is None or session.user_info is None:
        raise HTTPException(status_code=400, detail="Photo or user information is missing.")
    if session.submit_lock.locked():
        raise HTTPException(status_code=409, detail="Session is already being saved")

    async with session.submit_lock:
        if session.record_id:
            existing = bridge.get_photo_result_by_id(session.record_id)
            if existing.success and existing.data:
                return SessionCompleteResponse(success=True, record=existing.data, printed=False)

        file_name = build_file_name(str(uuid.uuid4()), session.user_info.name)
        saved = await asyncio.to_thread(bridge.save_photo_file, session.final_photo, file_name)
        if not saved.success:
            raise HTTPException(status_code=500, detail=f"Failed to save photo locally: {saved.error}")

        record = new_record(saved.file_path, session.selection, session.user_info)
        stored = await asyncio.to_thread(bridge.save_photo_result, record)
        if not stored.success:
            raise HTTPException(status_code=500, detail=f"Failed to save photo result: {stored.error}")

        session.photo_path = saved.file_path
        session.record_id = record.id
        logger.info("Session %s saved as record %s", session.session_id, record.id)

    printed, print_error = False, None
    if auto_print:
        result = await bridge.print(saved.file_path)
        printed = result.success
        print_error = None if result.success else result.error

    return SessionCompleteResponse(success=True, record=record, printed=printed, print_error=print_error)


@router.post("/submit")
async def submit_session(
        http_request: Request,
        session: SessionState = Depends(get_session_state),
        settings: Settings = Depends(get_settings),
):
    """Send the saved result to the web API, which emails it to the user."""
    if not session.final_photo or session.selection is None or session.user_info is None:
        raise HTTPException(status_code=400, detail="Photo or user information is missing.")
    if not session.photo_path:
        raise HTTPException(status_code=400, detail="Photo not saved yet. Please wait.")

    try:
        validate_upload(session.final_photo, settings.max_upload_bytes)
        user_info = validate_user_info(session.user_info)
    except (InvalidImageError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    remote = get_remote_client(http_request)
    try:
        data = await remote.submit_photo(session.photo_path, user_info, session.theme_label)
    except RemoteServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {"success": True, **data}


@router.delete("/reset", response_model=SessionStatusResponse)
async def reset_session(
        session: SessionState = Depends(get_session_state),
        camera: CameraService = Depends(get_camera_service),
        websocket_manager: WebSocketManager = Depends(get_websocket_manager),
):
    camera.stop_camera()
    session.reset()
    camera.bind(session)
    await websocket_manager.broadcast({"type": "session_reset", "session_id": session.session_id})
    return _status(session)
