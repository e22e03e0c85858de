"""
Storage service for generated images and payment screenshots.
Service layer: validates uploads and talks to Supabase Storage.
"""
import asyncio
import base64
import io
import logging
from typing import Optional, Tuple
from uuid import uuid4
from datetime import datetime, timezone

import httpx
from PIL import Image, UnidentifiedImageError

from config import settings
from database import SupabaseClient
from utils.exceptions import ValidationError, ExternalServiceError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 60.0
MAX_DOWNLOAD_SIZE = 50 * 1024 * 1024  # 50MB

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def detect_content_type(file_data: bytes) -> Optional[str]:
    """Detect image content type from magic bytes."""
    if file_data.startswith(b'\xff\xd8\xff'):
        return "image/jpeg"
    if file_data.startswith(b'\x89PNG\r\n\x1a\n'):
        return "image/png"
    if file_data.startswith(b'RIFF') and b'WEBP' in file_data[:12]:
        return "image/webp"
    if file_data.startswith(b'GIF8'):
        return "image/gif"
    return None


def decode_data_url(data_url: str) -> Tuple[bytes, str]:
    """Decode a base64 data URL into (bytes, content_type)."""
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or ";base64" not in header or not payload:
        raise ValidationError("Malformed data URL")
    content_type = header[5:].split(";", 1)[0] or "application/octet-stream"
    try:
        return base64.b64decode(payload, validate=True), content_type
    except (ValueError, TypeError):
        raise ValidationError("Malformed base64 image data")


class StorageService:
    """Service for managing file storage and image downloads."""

    def __init__(self, db: SupabaseClient):
        self.db = db

    def validate_image_upload(self, file_data: bytes, declared_type: Optional[str] = None) -> str:
        """
        Validate an uploaded image and return its detected content type.

        Checks size, magic bytes against the allowed types and that Pillow can parse it.
        """
        if not file_data:
            raise ValidationError("Uploaded file is empty")
        if len(file_data) > settings.max_file_size:
            raise ValidationError(f"File too large. Maximum size is {settings.max_file_size // (1024 * 1024)}MB")

        detected_type = detect_content_type(file_data)
        if detected_type is None or detected_type not in settings.allowed_file_types:
            raise ValidationError(f"Unsupported file type. Allowed: {', '.join(settings.allowed_file_types)}")
        if declared_type and declared_type.lower() not in (detected_type, "application/octet-stream"):
            if not (detected_type == "image/jpeg" and declared_type.lower() == "image/jpg"):
                raise ValidationError(f"File content does not match declared type: {declared_type}")

        try:
            with Image.open(io.BytesIO(file_data)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(f"Uploaded file is not a valid image: {e}")

        return detected_type

    @staticmethod
    def _build_path(user_id: str, content_type: str) -> str:
        """User-scoped unique object path."""
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        extension = EXTENSIONS.get(content_type, "bin")
        return f"{user_id}/{timestamp}_{uuid4().hex[:12]}.{extension}"

    async def upload_bytes(self, bucket: str, user_id: str, file_data: bytes, content_type: str) -> str:
        """Upload bytes to a bucket and return the public URL."""
        path = self._build_path(str(user_id), content_type)
        bucket_client = self.db.storage.from_(bucket)
        try:
            await asyncio.to_thread(
                bucket_client.upload,
                path,
                file_data,
                {"content-type": content_type, "upsert": "false"}
            )
            public_url = await asyncio.to_thread(bucket_client.get_public_url, path)
        except Exception as e:
            logger.error(f"[STORAGE] Upload to {bucket}/{path} failed: {e}")
            raise ExternalServiceError(f"Storage upload failed: {e}", service_name="supabase-storage")

        logger.info(f"[STORAGE] Uploaded {len(file_data)} bytes to {bucket}/{path}")
        return public_url

    async def upload_payment_screenshot(self, user_id: str, file_data: bytes,
                                        declared_type: Optional[str] = None) -> str:
        content_type = self.validate_image_upload(file_data, declared_type)
        return await self.upload_bytes(settings.payment_screenshots_bucket, user_id, file_data, content_type)

    async def persist_generated_image(self, user_id: str, image_url: str) -> str:
        """
        Copy a provider image URL into the generated-images bucket.
        Returns the storage URL, or the original URL when copying fails.
        """
        try:
            file_data, content_type = await self.fetch_image(image_url)
            return await self.upload_bytes(
                settings.generated_images_bucket,
                user_id,
                file_data,
                detect_content_type(file_data) or content_type
            )
        except (ExternalServiceError, ValidationError) as e:
            logger.warning(f"[STORAGE] Keeping provider URL, could not persist image: {e}")
            return image_url

    async def fetch_image(self, image_ref: str) -> Tuple[bytes, str]:
        """Resolve image_data (data URL or http URL) into bytes and a content type."""
        if image_ref.startswith("data:"):
            return decode_data_url(image_ref)

        if not image_ref.startswith(("http://", "https://")):
            raise ValidationError("Unsupported image reference")

        try:
            async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True) as client:
                response = await client.get(image_ref, headers={"Accept": "image/*"})
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[STORAGE] Download failed for {image_ref[:100]}: {e}")
            raise ExternalServiceError(f"Image download failed: {e}", service_name="image-host")

        content = response.content
        if len(content) > MAX_DOWNLOAD_SIZE:
            raise ExternalServiceError("Downloaded image exceeds size limit", service_name="image-host")

        content_type = response.headers.get("content-type", "image/png").split(";", 1)[0]
        return content, content_type
