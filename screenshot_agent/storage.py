from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Protocol

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from .config import CloudinaryCredentials, Settings
from .errors import BackendNotImplementedError, BackendUnspecifiedError, UploadError
from .models import StoredArtifact, UploadResult

logger = logging.getLogger(__name__)

LOCAL_STORAGE = "local"
DEFAULT_CLOUD_FOLDER = "default_folder"


@dataclass(frozen=True)
class UploadOptions:
    image_id: str | None = None
    workspace: str | None = None
    folder: str | None = None

    @property
    def remote_folder(self) -> str:
        parts = [p.strip("/") for p in (self.workspace, self.folder or DEFAULT_CLOUD_FOLDER) if p and p.strip("/")]
        return "/".join(parts)


class UploadBackend(Protocol):
    async def upload(self, artifact: StoredArtifact, options: UploadOptions) -> UploadResult: ...


def is_local(storage_service: str | None) -> bool:
    return not storage_service or storage_service.strip().lower() == LOCAL_STORAGE


class CloudinaryBackend:
    def __init__(self, credentials: CloudinaryCredentials, *, timeout_s: float = 30.0):
        self.credentials = credentials
        self.timeout_s = timeout_s
        if credentials.complete:
            cloudinary.config(
                cloud_name=credentials.cloud_name,
                api_key=credentials.api_key,
                api_secret=credentials.api_secret,
                secure=True,
            )

    async def upload(self, artifact: StoredArtifact, options: UploadOptions) -> UploadResult:
        if not self.credentials.complete:
            raise UploadError("Cloudinary credentials are not configured")

        upload_options = {"folder": options.remote_folder, "timeout": self.timeout_s}
        if options.image_id:
            # Same public_id in the same folder replaces the earlier upload.
            upload_options["public_id"] = options.image_id
            upload_options["overwrite"] = True

        try:
            # The SDK is blocking; keep it off the event loop.
            result = await asyncio.to_thread(cloudinary.uploader.upload, str(artifact.local_path), **upload_options)
        except cloudinary.exceptions.Error as e:
            raise UploadError(f"Cloudinary upload failed: {e}") from e
        except OSError as e:
            raise UploadError(f"Could not upload {artifact.local_path.name}: {e}") from e

        if not isinstance(result, dict):
            raise UploadError("Cloudinary returned an unexpected response")
        permalink = result.get("secure_url") or result.get("url")
        if not permalink:
            raise UploadError("Cloudinary response did not include a URL")
        return UploadResult(permalink=permalink, provider_metadata=result)


class UnimplementedBackend:
    def __init__(self, name: str):
        self.name = name

    async def upload(self, artifact: StoredArtifact, options: UploadOptions) -> UploadResult:
        raise BackendNotImplementedError(self.name)


class UploadDispatcher:
    """Routes an artifact to a storage backend by case-insensitive name."""

    def __init__(self, backends: Mapping[str, UploadBackend]):
        self._backends = {name.lower(): backend for name, backend in backends.items()}

    @property
    def names(self) -> list[str]:
        return sorted(self._backends)

    async def dispatch(
        self,
        storage_service: str | None,
        artifact: StoredArtifact,
        options: UploadOptions,
    ) -> UploadResult:
        name = (storage_service or "").strip().lower()
        backend = self._backends.get(name)
        if backend is None:
            raise BackendUnspecifiedError(storage_service)
        logger.info("Uploading %s to %s", artifact.local_path.name, name)
        return await backend.upload(artifact, options)


def default_backends(settings: Settings) -> dict[str, UploadBackend]:
    return {
        "cloudinary": CloudinaryBackend(settings.cloudinary, timeout_s=settings.upload_timeout_s),
        "s3": UnimplementedBackend("S3"),
    }
