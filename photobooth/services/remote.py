"""Client for the photobooth web API (AI generation and result submission)."""

import logging
import re
from dataclasses import dataclass
from typing import Dict

import httpx

from photobooth.config import Settings
from photobooth.exceptions import ConfigurationError, InvalidImageError, RemoteServiceError
from photobooth.models.session import UserInfo
from photobooth.services.storage import split_data_uri

logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_TYPES = ("image/png", "image/jpeg", "image/jpg")
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^(\+62|62|0)[0-9-]{9,15}$")


def sanitize_name(name: str) -> str:
    return re.sub(r"[<>]", "", name.strip())


def validate_user_info(user_info: UserInfo) -> UserInfo:
    """Format-level checks applied before anything leaves the kiosk."""
    name = sanitize_name(user_info.name)
    if not name:
        raise ValueError("Invalid name")
    if not EMAIL_PATTERN.match(user_info.email):
        raise ValueError("Invalid email format")
    if not PHONE_PATTERN.match(re.sub(r"\s", "", user_info.phone)):
        raise ValueError("Invalid phone number format. Please use Indonesian mobile format")
    return UserInfo(name=name, email=user_info.email, phone=user_info.phone)


def validate_upload(encoded_image: str, max_bytes: int) -> None:
    mime, payload = split_data_uri(encoded_image)
    if mime not in ALLOWED_UPLOAD_TYPES:
        raise InvalidImageError("Invalid image format. Only PNG and JPEG are allowed.")
    if len(payload) > max_bytes:
        raise InvalidImageError(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit.")


@dataclass
class RemoteApiClient:
    """HTTPX-backed client authenticated with the kiosk's bearer key."""

    base_url: str
    client_key: str
    http_client: httpx.AsyncClient
    timeout: float = 30.0

    @classmethod
    def create(cls, settings: Settings) -> "RemoteApiClient":
        if not settings.api_client_key:
            raise ConfigurationError("PHOTOBOOTH_API_CLIENT_KEY is required for the photobooth web API")
        return cls(
            base_url=settings.api_base_url.rstrip("/"),
            client_key=settings.api_client_key,
            http_client=httpx.AsyncClient(),
            timeout=settings.request_timeout,
        )

    async def _post(self, path: str, payload: Dict) -> Dict:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.client_key}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Request to %s failed: %s", url, e)
            raise RemoteServiceError(f"Network error calling {path}: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            logger.error("%s responded %s: %s", url, response.status_code, message)
            raise RemoteServiceError(message or f"{path} failed with status {response.status_code}")
        return data

    async def generate_image(self, photo_data_uri: str, theme: str) -> str:
        """Ask the AI service for a themed image; returns a data URI."""
        data = await self._post("/api/ai-generate", {"userPhotoBase64": photo_data_uri, "theme": theme})
        generated = data.get("generatedImageBase64")
        if not generated:
            raise RemoteServiceError("AI generation returned no image")
        logger.info("Received AI image for theme %s", theme)
        return generated

    async def submit_photo(self, photo_path: str, user_info: UserInfo, theme: str) -> Dict:
        return await self._post("/api/photo", {
            "photoPath": photo_path,
            "name": user_info.name,
            "email": user_info.email,
            "phone": user_info.phone,
            "theme": theme,
        })

    async def close(self) -> None:
        await self.http_client.aclose()
