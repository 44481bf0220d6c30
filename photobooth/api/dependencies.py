from fastapi import HTTPException
from starlette.requests import HTTPConnection

from photobooth.config import Settings
from photobooth.exceptions import ConfigurationError
from photobooth.services.bridge import PhotoboothBridge
from photobooth.services.camera import CameraService
from photobooth.services.compositor import CompositorService
from photobooth.services.quiz import QuizSession
from photobooth.services.remote import RemoteApiClient
from photobooth.services.session import SessionState
from photobooth.services.storage import PhotoStorage
from photobooth.services.websocket import WebSocketManager


def get_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_session_state(connection: HTTPConnection) -> SessionState:
    return connection.app.state.session


def get_camera_service(connection: HTTPConnection) -> CameraService:
    return connection.app.state.camera


def get_compositor(connection: HTTPConnection) -> CompositorService:
    return connection.app.state.compositor


def get_photo_storage(connection: HTTPConnection) -> PhotoStorage:
    return connection.app.state.storage


def get_bridge(connection: HTTPConnection) -> PhotoboothBridge:
    return connection.app.state.bridge


def get_quiz(connection: HTTPConnection) -> QuizSession:
    return connection.app.state.quiz


def get_websocket_manager(connection: HTTPConnection) -> WebSocketManager:
    return connection.app.state.websocket_manager


def get_remote_client(connection: HTTPConnection) -> RemoteApiClient:
    client = connection.app.state.remote
    if client is None:
        try:
            client = RemoteApiClient.create(connection.app.state.settings)
        except ConfigurationError as e:
            raise HTTPException(status_code=503, detail=str(e))
        connection.app.state.remote = client
    return client
