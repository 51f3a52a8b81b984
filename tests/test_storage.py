import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import cloudinary.exceptions

from screenshot_agent.config import CloudinaryCredentials
from screenshot_agent.errors import BackendNotImplementedError, BackendUnspecifiedError, UploadError
from screenshot_agent.models import StoredArtifact, UploadResult
from screenshot_agent.storage import (
    CloudinaryBackend,
    UnimplementedBackend,
    UploadDispatcher,
    UploadOptions,
    is_local,
)

CREDS = CloudinaryCredentials(cloud_name="demo", api_key="key123", api_secret="s3cr3t")


class RecordingBackend:
    def __init__(self):
        self.calls = []

    async def upload(self, artifact, options):
        self.calls.append((artifact, options))
        return UploadResult(permalink="https://cdn.example/x.png", provider_metadata={"id": 1})


class TestHelpers(unittest.TestCase):
    def test_is_local(self):
        self.assertTrue(is_local(None))
        self.assertTrue(is_local(""))
        self.assertTrue(is_local("local"))
        self.assertTrue(is_local("LOCAL"))
        self.assertFalse(is_local("cloudinary"))

    def test_remote_folder(self):
        self.assertEqual(UploadOptions(workspace="example.com", folder="og").remote_folder, "example.com/og")
        self.assertEqual(UploadOptions(workspace="example.com").remote_folder, "example.com/default_folder")


class TestUploadDispatcher(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        path = Path(self._tmp.name) / "1.png"
        path.write_bytes(b"\x89PNG")
        self.artifact = StoredArtifact(local_path=path, file_type="png", workspace="example.com")
        self.backend = RecordingBackend()
        self.dispatcher = UploadDispatcher({"Cloudinary": self.backend, "s3": UnimplementedBackend("S3")})

    def tearDown(self):
        self._tmp.cleanup()

    async def test_dispatch_is_case_insensitive(self):
        result = await self.dispatcher.dispatch("CLOUDINARY", self.artifact, UploadOptions())
        self.assertEqual(result.permalink, "https://cdn.example/x.png")
        self.assertEqual(len(self.backend.calls), 1)

    async def test_named_but_unimplemented_backend(self):
        with self.assertRaises(BackendNotImplementedError):
            await self.dispatcher.dispatch("s3", self.artifact, UploadOptions())

    async def test_unknown_backend(self):
        with self.assertRaises(BackendUnspecifiedError) as cm:
            await self.dispatcher.dispatch("dropbox", self.artifact, UploadOptions())
        self.assertNotIsInstance(cm.exception, BackendNotImplementedError)
        self.assertIsInstance(cm.exception, UploadError)

    def test_names(self):
        self.assertEqual(self.dispatcher.names, ["cloudinary", "s3"])


class TestCloudinaryBackend(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "1.png"
        self.path.write_bytes(b"\x89PNG")
        self.artifact = StoredArtifact(local_path=self.path, file_type="png", workspace="example.com", folder="og")
        config = patch("cloudinary.config")
        self.config = config.start()
        self.addCleanup(config.stop)

    def tearDown(self):
        self._tmp.cleanup()

    def test_configured_once_from_credentials(self):
        CloudinaryBackend(CREDS)
        self.config.assert_called_once_with(cloud_name="demo", api_key="key123", api_secret="s3cr3t", secure=True)

    def test_incomplete_credentials_are_not_configured(self):
        CloudinaryBackend(CloudinaryCredentials(cloud_name="demo"))
        self.config.assert_not_called()

    async def test_successful_upload(self):
        payload = {
            "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/example.com/og/hero.png",
            "public_id": "example.com/og/hero",
        }
        with patch("cloudinary.uploader.upload", return_value=payload) as upload:
            result = await CloudinaryBackend(CREDS, timeout_s=12).upload(
                self.artifact, UploadOptions(image_id="hero", workspace="example.com", folder="og")
            )

        self.assertEqual(result.permalink, payload["secure_url"])
        self.assertEqual(result.provider_metadata, payload)
        upload.assert_called_once_with(
            str(self.path), folder="example.com/og", timeout=12, public_id="hero", overwrite=True
        )

    async def test_without_image_id_no_overwrite(self):
        with patch("cloudinary.uploader.upload", return_value={"url": "http://res/x.png"}) as upload:
            result = await CloudinaryBackend(CREDS).upload(self.artifact, UploadOptions(workspace="example.com"))

        self.assertEqual(result.permalink, "http://res/x.png")
        upload.assert_called_once_with(str(self.path), folder="example.com/default_folder", timeout=30.0)

    async def test_missing_credentials(self):
        with patch("cloudinary.uploader.upload") as upload:
            with self.assertRaises(UploadError):
                await CloudinaryBackend(CloudinaryCredentials()).upload(self.artifact, UploadOptions())
        upload.assert_not_called()

    async def test_provider_error(self):
        with patch("cloudinary.uploader.upload", side_effect=cloudinary.exceptions.AuthorizationRequired("Invalid Signature")):
            with self.assertRaises(UploadError) as cm:
                await CloudinaryBackend(CREDS).upload(self.artifact, UploadOptions())
        self.assertIsInstance(cm.exception.__cause__, cloudinary.exceptions.Error)

    async def test_response_without_url(self):
        with patch("cloudinary.uploader.upload", return_value={"public_id": "x"}):
            with self.assertRaises(UploadError):
                await CloudinaryBackend(CREDS).upload(self.artifact, UploadOptions())

    async def test_unreadable_file(self):
        with patch("cloudinary.uploader.upload", side_effect=FileNotFoundError(str(self.path))):
            with self.assertRaises(UploadError):
                await CloudinaryBackend(CREDS).upload(self.artifact, UploadOptions())
