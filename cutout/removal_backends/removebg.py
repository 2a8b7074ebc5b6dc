import logging
from typing import Optional

import httpx

from cutout.config import PLACEHOLDER_API_KEY
from cutout.images import ImageRepresentation
from cutout.removal_backends.base import (
    ConfigMissingError,
    NetworkError,
    RemovalBackend,
    ServiceError,
)

logger = logging.getLogger(__name__)


class RemoveBgBackend(RemovalBackend):
    """remove.bg HTTP API backend.

    Sends the image as multipart ``image_file`` with ``size=auto`` and the
    credential in the ``X-Api-Key`` header. The response body is the
    processed image.
    """

    def __init__(
        self,
        api_key: str,
        url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) and self._api_key != PLACEHOLDER_API_KEY

    async def remove_background(self, image: ImageRepresentation) -> ImageRepresentation:
        if not self.is_configured:
            raise ConfigMissingError("remove.bg API key not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._url,
                    headers={"X-Api-Key": self._api_key},
                    files={
                        "image_file": (
                            f"upload.{image.extension}",
                            image.data,
                            image.mime_type,
                        )
                    },
                    data={"size": "auto"},
                )
        except httpx.HTTPError as e:
            raise NetworkError(f"remove.bg request failed: {e}") from e

        if not response.is_success:
            raise ServiceError(
                self._error_message(response), status_code=response.status_code
            )

        content_type = response.headers.get("content-type", "image/png")
        mime_type = content_type.split(";", 1)[0].strip() or "image/png"
        logger.info(
            f"remove.bg returned {len(response.content)} bytes ({mime_type})"
        )
        return ImageRepresentation(mime_type=mime_type, data=response.content)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Use errors[0].title from a JSON body, else the status code."""
        try:
            title = response.json()["errors"][0]["title"]
        except (ValueError, KeyError, IndexError, TypeError):
            title = None
        if not title:
            return f"API Error: {response.status_code}"
        return str(title)
