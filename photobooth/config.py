from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Kiosk Photobooth"
    app_description: str = "Capture, theme, composite, store and print photobooth results"
    debug: bool = False
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000

    camera_index: int = 0
    camera_width: int = 1920
    camera_height: int = 1080
    camera_fps: int = 30
    preview_fps: int = 15
    preview_quality: int = 60

    countdown_seconds: int = 3
    max_retake_count: int = 2

    data_dir: Path = Path.home() / ".photobooth"
    assets_dir: Path = Path("assets")
    # Dev-server mode: assets are served from this URL instead of the packaged directory
    asset_base_url: Optional[str] = None

    printer_name: str = "DS-RX1"
    print_media: str = "4x6.Borderless"
    print_cleanup_delay: float = 1.0
    pdf_dir: Path = Path.home() / "Desktop"

    api_base_url: str = "http://localhost:3000"
    api_client_key: Optional[str] = None
    request_timeout: float = 30.0
    max_upload_bytes: int = 5 * 1024 * 1024

    class Config:
        env_file = ".env"
        env_prefix = "PHOTOBOOTH_"

    @property
    def photos_dir(self) -> Path:
        return self.data_dir / "photos"

    @property
    def database_path(self) -> Path:
        return self.data_dir / "photobooth.db"


settings = Settings()
