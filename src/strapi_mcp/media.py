"""Media upload pipeline.

Chains authorization, source download, optional format conversion and the
multipart upload to Strapi's media library.
"""

import asyncio
import json
import mimetypes
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlparse

from shared.logging import get_logger
from shared.models import (
    DispatchOutcome,
    ProcessingFailure,
    ServerProfile,
    TransportFailure,
)
from backends.dispatcher import BackendDispatcher
from backends.images import ImageProcessingError, transform_image
from strapi_mcp.auth import check_authorization
from strapi_mcp.tools import UploadMediaRequest

logger = get_logger(__name__)

UPLOAD_PATH = "api/upload"

ImageTransform = Callable[[bytes, str, int], bytes]


def filename_from_url(url: str, target_format: str = "original") -> str:
    """
    Derive the upload filename from the source URL.

    The extension is replaced when the image is converted.
    """
    name = unquote(urlparse(url).path.rstrip("/").rsplit("/", 1)[-1]) or "image"
    if target_format == "original":
        return name
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return f"{stem}.{target_format}"


def content_type_for(filename: str, target_format: str, source_type: Optional[str]) -> str:
    """Pick the MIME type sent with the uploaded file."""
    if target_format != "original":
        return f"image/{target_format}"
    if source_type and source_type.split(";", 1)[0].strip().startswith("image/"):
        return source_type.split(";", 1)[0].strip()
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "image/jpeg"


def file_info(metadata: Any) -> Optional[str]:
    """Serialize upload metadata into Strapi's ``fileInfo`` form field."""
    if metadata is None:
        return None
    info = {
        "name": metadata.name,
        "caption": metadata.caption,
        "alternativeText": metadata.alt_text,
        "description": metadata.description,
    }
    info = {key: value for key, value in info.items() if value is not None}
    return json.dumps(info) if info else None


class MediaPipeline:
    """
    Upload a remote image to a Strapi media library.

    Stages run in a fixed order: authorize, fetch, transform, upload. Any
    stage failure ends the pipeline with the corresponding outcome.
    """

    def __init__(
        self,
        dispatcher: BackendDispatcher,
        transform: ImageTransform = transform_image
    ) -> None:
        self.dispatcher = dispatcher
        self.transform = transform

    async def upload_from_url(
        self,
        profile: ServerProfile,
        request: UploadMediaRequest
    ) -> DispatchOutcome:
        """
        Run the pipeline for one upload request.

        Args:
            profile: Target server
            request: Validated upload request

        Returns:
            Success with the backend's uploaded-file list, or a failure
        """
        # Authorization comes first so that a rejected call makes no requests.
        denied = check_authorization(request)
        if denied is not None:
            return denied

        source_url = str(request.source_url)
        fetched = await self.dispatcher.fetch_bytes(source_url)
        if isinstance(fetched, TransportFailure):
            return fetched
        content, source_type = fetched

        target_format = request.format.value
        if target_format != "original":
            loop = asyncio.get_running_loop()
            try:
                content = await loop.run_in_executor(
                    None, self.transform, content, target_format, request.quality
                )
            except ImageProcessingError as e:
                logger.warning("Image transform failed", url=source_url, error=str(e))
                return ProcessingFailure(message=str(e))

        filename = filename_from_url(source_url, target_format)
        files = {"files": (filename, content, content_type_for(filename, target_format, source_type))}
        info = file_info(request.metadata)
        data = {"fileInfo": info} if info else None

        logger.info(
            "Uploading media",
            server=profile.name,
            filename=filename,
            format=target_format,
            size=len(content)
        )
        return await self.dispatcher.dispatch(
            profile,
            "POST",
            UPLOAD_PATH,
            files=files,
            data=data,
            context="Media upload"
        )
