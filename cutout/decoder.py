import io
import logging
from typing import Optional, Tuple

from PIL import Image

from cutout.images import ImageRepresentation, RawFile

logger = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when an uploaded file cannot be read."""
    pass


class ImageDecoder:
    """Reads a raw file into a self-contained ImageRepresentation."""

    async def decode(self, file: RawFile) -> ImageRepresentation:
        try:
            data = await file.read()
        except Exception as e:
            raise DecodeError(f"Failed to read file '{file.filename}': {e}") from e

        if not isinstance(data, bytes):
            raise DecodeError(
                f"Unexpected content from file '{file.filename}': {type(data).__name__}"
            )

        width, height = self._probe_dimensions(data)
        logger.info(
            f"Decoded {len(data)} bytes ({file.content_type}) from '{file.filename}'"
        )
        return ImageRepresentation(
            mime_type=file.content_type or "application/octet-stream",
            data=data,
            width=width,
            height=height,
        )

    @staticmethod
    def _probe_dimensions(data: bytes) -> Tuple[Optional[int], Optional[int]]:
        """Best-effort width/height; the remote service judges validity."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.width, img.height
        except Exception as e:
            logger.warning(f"Could not read image dimensions: {e}")
            return None, None
