"""Tests for image conversion and the media upload pipeline."""

import io
import json

import httpx
import pytest
from PIL import Image

from shared.models import (
    AuthorizationFailure,
    BackendFailure,
    ProcessingFailure,
    Success,
    TransportFailure,
)
from backends.dispatcher import BackendDispatcher
from backends.images import ImageProcessingError, png_compress_level, transform_image
from strapi_mcp.media import MediaPipeline, content_type_for, file_info, filename_from_url
from strapi_mcp.tools import MediaMetadata, UploadMediaRequest
from conftest import RecordingBackend


def png_bytes(mode="RGBA", size=(8, 8)):
    buffer = io.BytesIO()
    Image.new(mode, size, color=0).save(buffer, format="PNG")
    return buffer.getvalue()


def upload_request(**overrides):
    arguments = {
        "server": "prod",
        "sourceUrl": "https://img.test/photos/cat.png",
        "authorized": True,
    }
    arguments.update(overrides)
    return UploadMediaRequest.model_validate(arguments)


def media_backend(source=None, upload_status=200):
    """Backend serving the source image and accepting uploads."""
    source = source if source is not None else png_bytes()

    def handler(request):
        if request.url.host == "img.test":
            return httpx.Response(200, content=source, headers={"Content-Type": "image/png"})
        if upload_status != 200:
            return httpx.Response(upload_status, json={"error": {"message": "Upload rejected"}})
        return httpx.Response(200, json=[{"id": 7, "name": "cat.png", "url": "/uploads/cat.png"}])

    return RecordingBackend(handler)


class TestTransformImage:
    """Tests for Pillow-based conversion."""

    def test_original_is_unchanged(self):
        assert transform_image(b"anything", "original", 80) == b"anything"

    def test_png_to_jpeg(self):
        """Test that transparent images are flattened for JPEG."""
        converted = transform_image(png_bytes("RGBA"), "jpeg", 70)

        with Image.open(io.BytesIO(converted)) as image:
            assert image.format == "JPEG"
            assert image.mode == "RGB"

    def test_png_to_webp(self):
        converted = transform_image(png_bytes("RGB"), "webp", 50)

        with Image.open(io.BytesIO(converted)) as image:
            assert image.format == "WEBP"

    def test_jpeg_to_png(self):
        jpeg = transform_image(png_bytes("RGB"), "jpeg", 90)

        converted = transform_image(jpeg, "png", 100)

        with Image.open(io.BytesIO(converted)) as image:
            assert image.format == "PNG"

    def test_not_an_image(self):
        with pytest.raises(ImageProcessingError):
            transform_image(b"<html>not an image</html>", "png", 80)

    def test_unsupported_format(self):
        with pytest.raises(ImageProcessingError):
            transform_image(png_bytes(), "gif", 80)

    def test_png_compress_level(self):
        assert png_compress_level(100) == 0
        assert png_compress_level(1) == 8
        assert png_compress_level(50) == 4


class TestMediaHelpers:
    """Tests for filename, MIME type and metadata handling."""

    def test_filename_kept_for_original(self):
        assert filename_from_url("https://img.test/photos/cat.png") == "cat.png"

    def test_extension_replaced_on_conversion(self):
        assert filename_from_url("https://img.test/photos/cat.png?v=2", "webp") == "cat.webp"

    def test_filename_without_path(self):
        assert filename_from_url("https://img.test/", "jpeg") == "image.jpeg"

    def test_content_type(self):
        assert content_type_for("cat.webp", "webp", "image/png") == "image/webp"
        assert content_type_for("cat.png", "original", "image/png; charset=binary") == "image/png"
        assert content_type_for("cat.gif", "original", "application/octet-stream") == "image/gif"

    def test_file_info_uses_backend_field_names(self):
        metadata = MediaMetadata(name="Cat", altText="A cat")

        assert json.loads(file_info(metadata)) == {"name": "Cat", "alternativeText": "A cat"}

    def test_empty_file_info(self):
        assert file_info(None) is None
        assert file_info(MediaMetadata()) is None


class TestMediaPipeline:
    """Tests for MediaPipeline."""

    @pytest.mark.asyncio
    async def test_unauthorized_upload_makes_no_requests(self, profile):
        """Test that consent is checked before anything is downloaded."""
        backend = media_backend()
        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()))

        outcome = await pipeline.upload_from_url(profile, upload_request(authorized=False))

        assert isinstance(outcome, AuthorizationFailure)
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_upload_original(self, profile):
        """Test the full fetch-then-upload sequence."""
        backend = media_backend()
        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()))

        outcome = await pipeline.upload_from_url(profile, upload_request(
            metadata={"caption": "Cute", "altText": "A cat"}
        ))

        assert isinstance(outcome, Success)
        assert outcome.body[0]["id"] == 7
        download, upload = backend.requests
        assert str(download.url) == "https://img.test/photos/cat.png"
        assert upload.method == "POST"
        assert str(upload.url) == "https://x.test/api/upload"
        assert upload.headers["Authorization"] == "Bearer t1"
        assert b'filename="cat.png"' in upload.content
        assert b'"alternativeText": "A cat"' in upload.content

    @pytest.mark.asyncio
    async def test_upload_with_conversion(self, profile):
        backend = media_backend()
        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()))

        outcome = await pipeline.upload_from_url(profile, upload_request(format="jpeg", quality=60))

        assert isinstance(outcome, Success)
        upload = backend.requests[1]
        assert b'filename="cat.jpeg"' in upload.content
        assert b"image/jpeg" in upload.content

    @pytest.mark.asyncio
    async def test_download_failure(self, profile):
        backend = RecordingBackend(lambda request: httpx.Response(404))
        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()))

        outcome = await pipeline.upload_from_url(profile, upload_request())

        assert isinstance(outcome, TransportFailure)
        assert backend.call_count == 1

    @pytest.mark.asyncio
    async def test_conversion_failure_stops_before_upload(self, profile):
        """Test that an undecodable source never reaches the backend."""
        backend = media_backend(source=b"not an image")
        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()))

        outcome = await pipeline.upload_from_url(profile, upload_request(format="png"))

        assert isinstance(outcome, ProcessingFailure)
        assert backend.call_count == 1

    @pytest.mark.asyncio
    async def test_backend_rejects_upload(self, profile):
        backend = media_backend(upload_status=413)
        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()))

        outcome = await pipeline.upload_from_url(profile, upload_request())

        assert isinstance(outcome, BackendFailure)
        assert outcome.status == 413
        assert outcome.message.startswith("Media upload failed with status: 413 - Upload rejected")

    @pytest.mark.asyncio
    async def test_custom_transform(self, profile):
        backend = media_backend()
        calls = []

        def transform(data, target_format, quality):
            calls.append((target_format, quality))
            return b"converted"

        pipeline = MediaPipeline(BackendDispatcher(client=backend.client()), transform=transform)

        await pipeline.upload_from_url(profile, upload_request(format="webp", quality=33))

        assert calls == [("webp", 33)]
        assert b"converted" in backend.requests[1].content
