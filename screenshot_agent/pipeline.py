from __future__ import annotations

import asyncio
import logging

from .config import Settings
from .errors import UploadError, ValidationError
from .models import ScreenshotRequest, ScreenshotResponse, StoredArtifact, UploadResult
from .paths import PathResolver, default_workspace, normalize_segments, timestamp_stem
from .screenshot import ScreenshotRenderer, render_options_for
from .storage import UploadDispatcher, UploadOptions, default_backends, is_local
from .validation import is_valid_url

logger = logging.getLogger(__name__)


class ScreenshotPipeline:
    """Request → rendered file → optional upload → retrievable URL.

    Upload failures of any kind never fail the request: the artifact stays on
    disk and its local URL is returned. After a successful upload the local
    copy is removed and the provider permalink is returned instead.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        renderer: ScreenshotRenderer | None = None,
        dispatcher: UploadDispatcher | None = None,
        resolver: PathResolver | None = None,
    ):
        self.settings = settings
        self.renderer = renderer or ScreenshotRenderer(settings.navigation_timeout_ms)
        self.dispatcher = dispatcher or UploadDispatcher(default_backends(settings))
        self.resolver = resolver or PathResolver(settings.image_dir, settings.site_url)

    async def generate(self, request: ScreenshotRequest) -> ScreenshotResponse:
        url = request.target_url
        if not is_valid_url(url):
            raise ValidationError("A valid absolute url is required")

        options = render_options_for(request)
        # One cleaned namespace for the local path, the upload folder and the response.
        workspace = normalize_segments(request.workspace) or default_workspace(url)
        folder = normalize_segments(request.folder)
        path = self.resolver.artifact_path(workspace, folder, timestamp_stem(), options.file_type)

        await self.renderer.capture(url, options, path)
        artifact = StoredArtifact(local_path=path, file_type=options.file_type, workspace=workspace, folder=folder)
        local_url = self.resolver.public_url(path)

        screenshot, upload_info = local_url, None
        if not is_local(request.storage_service):
            result = await self._upload(request, artifact)
            if result is not None:
                await self._delete_local(artifact)
                screenshot, upload_info = result.permalink, result.provider_metadata

        return ScreenshotResponse(
            screenshot=screenshot,
            file_type=options.file_type,
            source=url,
            upload_info=upload_info,
            workspace=workspace or None,
        )

    async def _upload(self, request: ScreenshotRequest, artifact: StoredArtifact) -> UploadResult | None:
        options = UploadOptions(image_id=request.image_id, workspace=artifact.workspace, folder=artifact.folder)
        try:
            return await asyncio.wait_for(
                self.dispatcher.dispatch(request.storage_service, artifact, options),
                timeout=self.settings.upload_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Upload to %s timed out after %ss, serving %s locally",
                request.storage_service,
                self.settings.upload_timeout_s,
                artifact.local_path.name,
            )
        except UploadError as e:
            logger.error("Upload to %s failed, serving %s locally: %s", request.storage_service, artifact.local_path.name, e)
        except Exception:
            logger.exception("Unexpected upload failure, serving %s locally", artifact.local_path.name)
        return None

    @staticmethod
    async def _delete_local(artifact: StoredArtifact) -> None:
        try:
            await asyncio.to_thread(artifact.local_path.unlink)
        except OSError as e:
            logger.warning("Failed to delete local file %s: %s", artifact.local_path, e)
        else:
            logger.info("Deleted local copy %s after upload", artifact.local_path.name)
