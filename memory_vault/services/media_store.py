# memory_vault/services/media_store.py

import io
import time
import hashlib
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Optional, Sequence, Dict, Any, cast

import httpx
from PIL import Image, UnidentifiedImageError
from loguru import logger
from pydantic import BaseModel

from memory_vault.core.config import settings
from memory_vault.core.exceptions import MediaStoreError, UploadError, DeleteError
from memory_vault.core.logging_config import trace_id_var

SUPPORTED_IMAGE_FORMATS: tuple[str, ...] = ("jpg", "jpeg", "png", "gif")

# Pillow format name -> media host format name
_PIL_FORMATS = {"JPEG": "jpg", "PNG": "png", "GIF": "gif"}
_CONTENT_TYPES = {"jpg": "image/jpeg", "png": "image/png", "gif": "image/gif"}


class StoredImage(BaseModel):
    url: str
    public_id: str


def detect_image_format(blob: bytes) -> Optional[str]:
    """Returns 'jpg', 'png' or 'gif' when the bytes decode as one of those, else None."""
    try:
        with Image.open(io.BytesIO(blob)) as img:
            pil_format = img.format
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    return _PIL_FORMATS.get(pil_format or "")


def ensure_supported_format(blob: bytes, allowed_formats: Sequence[str] = SUPPORTED_IMAGE_FORMATS) -> str:
    """Sniffs the blob and raises UploadError unless it is one of the allowed formats."""
    if not blob:
        raise UploadError("Image blob is empty")
    detected = detect_image_format(blob)
    allowed = {fmt.lower() for fmt in allowed_formats}
    if detected == "jpg" and "jpeg" in allowed:
        allowed.add("jpg")
    if detected is None or detected not in allowed:
        raise UploadError(f"Unsupported image format: {detected or 'unknown'} (allowed: {', '.join(sorted(allowed))})")
    return detected


class MediaStore(ABC):
    """Contract with the remote media host: store a blob, remove it by public id."""

    @abstractmethod
    async def store(
        self,
        blob: bytes,
        allowed_formats: Sequence[str] = SUPPORTED_IMAGE_FORMATS,
        filename: Optional[str] = None,
    ) -> StoredImage:
        """Uploads the blob. Raises UploadError on transport failure or unsupported format."""

    @abstractmethod
    async def remove(self, public_id: str) -> bool:
        """Deletes a blob. Returns False when the host reports it missing; raises DeleteError on failure."""


class CloudinaryMediaStore(MediaStore):
    """Signed Cloudinary REST uploads into a fixed folder."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
    ):
        self.client = client
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.base_url = base_url.rstrip("/")

    def _endpoint(self, action: str) -> str:
        return f"{self.base_url}/{self.cloud_name}/image/{action}"

    def sign(self, params: Dict[str, Any]) -> str:
        """Cloudinary signature: sha1 of the sorted params string followed by the api secret."""
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _signed_form(self, params: Dict[str, Any]) -> Dict[str, str]:
        form = {key: str(value) for key, value in params.items()}
        form["api_key"] = self.api_key
        form["signature"] = self.sign(params)
        return form

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message", "Unknown API error")
        except (ValueError, AttributeError):
            return response.text[:500] or "Unknown API error"

    async def store(
        self,
        blob: bytes,
        allowed_formats: Sequence[str] = SUPPORTED_IMAGE_FORMATS,
        filename: Optional[str] = None,
    ) -> StoredImage:
        log = logger.bind(trace_id=trace_id_var.get(), service="MediaStore", folder=self.folder)
        image_format = ensure_supported_format(blob, allowed_formats)

        params = {
            "allowed_formats": ",".join(allowed_formats),
            "folder": self.folder,
            "timestamp": int(time.time()),
        }
        files = {"file": (filename or f"upload.{image_format}", blob, _CONTENT_TYPES[image_format])}

        log.info(f"Uploading {image_format} image ({len(blob)} bytes) to media host...")
        try:
            response = await self.client.post(self._endpoint("upload"), data=self._signed_form(params), files=files)
        except httpx.TimeoutException as e:
            log.error("Timeout uploading image to media host.")
            raise UploadError("Timeout uploading image to media host") from e
        except httpx.RequestError as e:
            log.error(f"HTTP request error uploading image: {e}")
            raise UploadError(f"Media host request failed: {e}") from e

        if not response.is_success:
            message = self._error_message(response)
            log.error(f"Media host rejected upload. Status={response.status_code} Message='{message}'")
            raise UploadError(f"Media host rejected upload ({response.status_code}): {message}")

        try:
            body = response.json()
        except ValueError as e:
            log.error(f"Media host returned non-JSON upload response: {response.text[:500]}")
            raise UploadError("Media host returned a non-JSON upload response") from e
        if not isinstance(body, dict):
            log.error(f"Media host upload response is not an object: {body!r:.500}")
            raise UploadError("Media host upload response is not a JSON object")
        url = body.get("secure_url") or body.get("url")
        public_id = body.get("public_id")
        if not url or not public_id:
            log.error(f"Media host upload response missing url/public_id: {body}")
            raise UploadError("Media host upload response missing url or public_id")

        log.success(f"Image stored. public_id={public_id}")
        return StoredImage(url=url, public_id=public_id)

    async def remove(self, public_id: str) -> bool:
        log = logger.bind(trace_id=trace_id_var.get(), service="MediaStore", public_id=public_id)
        params = {"public_id": public_id, "timestamp": int(time.time())}

        log.info("Deleting image from media host...")
        try:
            response = await self.client.post(self._endpoint("destroy"), data=self._signed_form(params))
        except httpx.TimeoutException as e:
            log.error("Timeout deleting image from media host.")
            raise DeleteError("Timeout deleting image from media host", public_id=public_id) from e
        except httpx.RequestError as e:
            log.error(f"HTTP request error deleting image: {e}")
            raise DeleteError(f"Media host request failed: {e}", public_id=public_id) from e

        if not response.is_success:
            message = self._error_message(response)
            log.error(f"Media host rejected delete. Status={response.status_code} Message='{message}'")
            raise DeleteError(f"Media host rejected delete ({response.status_code}): {message}", public_id=public_id)

        try:
            body = response.json()
        except ValueError as e:
            log.error(f"Media host returned non-JSON destroy response: {response.text[:500]}")
            raise DeleteError("Media host returned a non-JSON destroy response", public_id=public_id) from e
        if not isinstance(body, dict):
            log.error(f"Media host destroy response is not an object: {body!r:.500}")
            raise DeleteError("Media host destroy response is not a JSON object", public_id=public_id)
        result = body.get("result")
        if result == "ok":
            log.success("Image deleted from media host.")
            return True
        if result == "not found":
            log.warning("Media host reports image not found.")
            return False
        raise DeleteError(f"Unexpected destroy result: {result}", public_id=public_id)


class MediaStoreContext(AbstractAsyncContextManager):
    """Owns the HTTP client used to reach the media host for the life of the process."""

    client: Optional[httpx.AsyncClient] = None
    store: Optional[MediaStore] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        if self.store is not None:
            logger.info("Media store client already initialized.")
            return
        self.client = httpx.AsyncClient(timeout=settings.MEDIA_TIMEOUT_SECONDS)
        self.store = CloudinaryMediaStore(
            client=self.client,
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            folder=settings.MEDIA_FOLDER,
            base_url=settings.CLOUDINARY_API_BASE_URL,
        )
        logger.success(f"Media store ready (cloud '{settings.CLOUDINARY_CLOUD_NAME}', folder '{settings.MEDIA_FOLDER}').")

    async def disconnect(self):
        if self.client:
            logger.info("Closing media store HTTP client...")
            try:
                await self.client.aclose()
            finally:
                self.client = None
                self.store = None

    def get_store(self) -> MediaStore:
        if self.store is None:
            logger.critical("Attempted to get media store, but it's not initialized.")
            raise RuntimeError("Media store is not initialized.")
        return cast(MediaStore, self.store)


media_manager = MediaStoreContext()


async def get_media_store() -> MediaStore:
    """FastAPI dependency returning the process-wide media store."""
    try:
        return media_manager.get_store()
    except RuntimeError as e:
        logger.error(f"Media store dependency requested before initialization: {e}")
        raise MediaStoreError("Media store not available") from e
