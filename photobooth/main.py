import logging
from typing import Callable, Optional

import cv2
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from photobooth.api.routes import camera, photos, printing, records, session, websocket
from photobooth.app_logging import configure_logging
from photobooth.assets import AssetResolver
from photobooth.config import Settings, settings as default_settings
from photobooth.db.records import RecordStore
from photobooth.services.bridge import PhotoboothBridge
from photobooth.services.camera import CameraService
from photobooth.services.compositor import CompositorService
from photobooth.services.printer import PrintService
from photobooth.services.quiz import QuizSession
from photobooth.services.session import SessionState
from photobooth.services.storage import PhotoStorage
from photobooth.services.websocket import WebSocketManager

logger = logging.getLogger(__name__)


def create_app(
        settings: Optional[Settings] = None,
        capture_factory: Callable = cv2.VideoCapture,
        camera_sleep: Optional[Callable] = None,
        print_runner: Optional[Callable] = None,
        remote_client=None,
) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        debug=settings.debug
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    assets = AssetResolver(settings.assets_dir, settings.asset_base_url)
    storage = PhotoStorage(settings.photos_dir)
    record_store = RecordStore(settings.database_path)
    printer = PrintService(settings, runner=print_runner) if print_runner else PrintService(settings)
    camera_kwargs = {"capture_factory": capture_factory}
    if camera_sleep is not None:
        camera_kwargs["sleep"] = camera_sleep

    app.state.settings = settings
    app.state.session = SessionState()
    app.state.camera = CameraService(settings, **camera_kwargs)
    app.state.compositor = CompositorService(assets)
    app.state.storage = storage
    app.state.records = record_store
    app.state.bridge = PhotoboothBridge(storage, record_store, printer)
    app.state.quiz = QuizSession()
    app.state.websocket_manager = WebSocketManager()
    app.state.remote = remote_client

    # Include routers
    for module in (camera, session, photos, records, printing):
        app.include_router(module.router, prefix="/api")
    app.include_router(websocket.router)

    @app.on_event("startup")
    async def startup_event():
        configure_logging(settings.log_level)
        app.state.camera.bind(app.state.session)
        logger.info("Photos are stored in %s", settings.photos_dir)

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.camera.cleanup()
        app.state.records.close()
        if app.state.remote is not None:
            await app.state.remote.close()

    @app.get("/")
    async def get_index():
        return {"name": settings.app_name, "session_id": app.state.session.session_id}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "camera_active": app.state.camera.is_active}

    return app


app = create_app()
