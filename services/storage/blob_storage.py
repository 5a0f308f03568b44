"""
=====================================================
Voice Lead Agent - Audio Blob Storage
=====================================================
Publishes synthesized clips to Azure Blob Storage so Twilio can
<Play> them by URL.
"""

import hashlib
import time
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient, ContainerClient
from loguru import logger

from services.tts.tts_base import AudioUploadError


def blob_name_for(text: str, voice_id: str, timestamp_ms: Optional[int] = None, extension: str = "mp3") -> str:
    """Content-hashed, timestamp-suffixed object key"""
    digest = hashlib.md5(f"{voice_id}|{text}".encode("utf-8")).hexdigest()[:16]
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    prefix = "".join(ch for ch in voice_id if ch.isalnum())[:24] or "voice"
    return f"{prefix}-{digest}-{timestamp_ms}.{extension}"


class AudioStorage:
    """Public-read container of synthesized speech"""

    def __init__(
        self,
        connection_string: str,
        container_name: str = "voice-audio",
        cache_max_age: int = 31536000,
    ):
        self.connection_string = connection_string
        self.container_name = container_name
        self.cache_max_age = cache_max_age

        self._service: Optional[BlobServiceClient] = None
        self._container: Optional[ContainerClient] = None
        self._container_ready = False

    async def _get_container(self) -> ContainerClient:
        """Get the container client, creating the container on first use"""
        if self._container is None:
            self._service = BlobServiceClient.from_connection_string(self.connection_string)
            self._container = self._service.get_container_client(self.container_name)

        if not self._container_ready:
            try:
                await self._container.create_container(public_access="blob")
                logger.info(f"BlobStorage: Created container {self.container_name}")
            except ResourceExistsError:
                pass
            self._container_ready = True

        return self._container

    async def upload_audio(
        self,
        text: str,
        audio: bytes,
        voice_id: str,
        content_type: str = "audio/mpeg",
        extension: str = "mp3",
    ) -> str:
        """
        Upload one clip.

        Returns:
            Public URL of the blob

        Raises:
            AudioUploadError: on any storage failure
        """
        name = blob_name_for(text, voice_id, extension=extension)
        try:
            container = await self._get_container()
            blob = container.get_blob_client(name)
            await blob.upload_blob(
                audio,
                overwrite=True,
                content_settings=ContentSettings(
                    content_type=content_type,
                    cache_control=f"public, max-age={self.cache_max_age}, immutable",
                ),
            )
        except AzureError as e:
            logger.error(f"BlobStorage: Upload of {name} failed: {e}")
            raise AudioUploadError(f"Upload failed: {e}") from e
        except ValueError as e:
            # Malformed connection string
            logger.error(f"BlobStorage: Invalid storage configuration: {e}")
            raise AudioUploadError(f"Invalid storage configuration: {e}") from e

        logger.info(f"BlobStorage: Uploaded {name} ({len(audio)} bytes)")
        return blob.url

    async def close(self) -> None:
        if self._service is not None:
            await self._service.close()
        self._service = None
        self._container = None
        self._container_ready = False


def create_audio_storage(config: dict) -> Optional[AudioStorage]:
    """Factory; None when no connection string is configured"""
    connection_string = config.get('azure_storage_connection_string')
    if not connection_string:
        logger.warning("BlobStorage: No connection string configured, audio upload disabled")
        return None
    return AudioStorage(
        connection_string=connection_string,
        container_name=config.get('audio_container', 'voice-audio'),
        cache_max_age=config.get('audio_cache_max_age', 31536000),
    )
