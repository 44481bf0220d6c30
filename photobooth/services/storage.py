import base64
import binascii
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Tuple, Union

from photobooth.exceptions import InvalidImageError

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:([a-zA-Z0-9]+/[a-zA-Z0-9\-.+]+);base64,(.+)$", re.DOTALL)
IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png')


def split_data_uri(value: str) -> Tuple[str, bytes]:
    """Return the mime type and decoded bytes of a base64 data URI."""
    match = DATA_URI_PATTERN.match(value or "")
    if not match:
        raise InvalidImageError("Invalid base64 image format")

    try:
        payload = base64.b64decode(match.group(2), validate=True)
    except binascii.Error as e:
        raise InvalidImageError(f"Invalid base64 payload: {e}") from e
    return match.group(1), payload


def build_file_name(photo_id: str, user_name: str) -> str:
    return f"{photo_id}-{re.sub(r'[^a-zA-Z0-9]', '-', user_name.strip())}.png"


class PhotoStorage:
    def __init__(self, photos_dir: Union[str, Path]):
        self.photos_dir = Path(photos_dir)

    def save(self, encoded_image: str, file_name: str) -> Path:
        _, payload = split_data_uri(encoded_image)

        name = os.path.basename(file_name)
        if not name or name != file_name:
            raise InvalidImageError(f"Invalid file name: {file_name!r}")

        self.photos_dir.mkdir(parents=True, exist_ok=True)
        filepath = (self.photos_dir / name).resolve()
        filepath.write_bytes(payload)

        logger.info("Saved photo %s (%d bytes)", filepath, len(payload))
        return filepath

    def read(self, path: Union[str, Path]) -> bytes:
        return Path(path).read_bytes()

    def path_for(self, file_name: str) -> Path:
        return self.photos_dir / os.path.basename(file_name)

    def list_photos(self) -> List[Dict]:
        photos = []

        if self.photos_dir.exists():
            for filepath in self.photos_dir.iterdir():
                if filepath.suffix.lower() in IMAGE_EXTENSIONS:
                    stat = filepath.stat()
                    photos.append({
                        "filename": filepath.name,
                        "size": stat.st_size,
                        "created": datetime.fromtimestamp(stat.st_ctime).isoformat(),
                        "download_url": f"/api/photos/{filepath.name}"
                    })

        return sorted(photos, key=lambda x: x["created"], reverse=True)
