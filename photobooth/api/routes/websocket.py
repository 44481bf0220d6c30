from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, HTTPException
import asyncio
import json
import logging

from photobooth.config import Settings
from photobooth.services.camera import CameraService
from photobooth.services.websocket import WebSocketManager
from photobooth.api.dependencies import get_camera_service, get_settings, get_websocket_manager

logger = logging.getLogger(__name__)

router = APIRouter()

NAVIGATION_TARGETS = {"home": "navigate-to-home", "data": "navigate-to-data"}


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    camera_service: CameraService = Depends(get_camera_service),
    websocket_manager: WebSocketManager = Depends(get_websocket_manager),
    settings: Settings = Depends(get_settings),
):
    await websocket_manager.connect(websocket)
    try:
        while True:
            frame = camera_service.get_preview_frame()
            if frame:
                await websocket.send_text(json.dumps({
                    "type": "preview",
                    "data": frame,
                    "countdown": camera_service.countdown,
                }))
            try:
                # Client messages are ignored; receiving is how a disconnect shows up
                await asyncio.wait_for(websocket.receive_text(), timeout=1 / settings.preview_fps)
            except asyncio.TimeoutError:
                pass
    except WebSocketDisconnect:
        logger.info("Preview client disconnected")
    finally:
        websocket_manager.disconnect(websocket)
        # Release the camera once nobody is watching the capture screen
        if not websocket_manager.active_connections:
            camera_service.stop_camera()


@router.post("/api/navigate/{target}")
async def navigate(target: str, websocket_manager: WebSocketManager = Depends(get_websocket_manager)):
    if target not in NAVIGATION_TARGETS:
        raise HTTPException(status_code=404, detail=f"Unknown navigation target: {target}")

    await websocket_manager.broadcast({"type": NAVIGATION_TARGETS[target]})
    return {"success": True}
