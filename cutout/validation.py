from typing import Optional

from cutout.config import get_settings
from cutout.images import RawFile

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class ValidationError(Exception):
    """Raised when an uploaded file does not meet the upload policy."""
    pass


class UnsupportedTypeError(ValidationError):
    """The declared MIME type is not an image type."""

    def __init__(self, content_type: Optional[str]):
        self.content_type = content_type
        super().__init__(f"Unsupported content type '{content_type}'")


class TooLargeError(ValidationError):
    """The file exceeds the maximum accepted size."""

    def __init__(self, size: Optional[int], max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"File size {size} exceeds maximum of {max_size} bytes")


class FileValidator:
    def __init__(self, max_size: int = DEFAULT_MAX_FILE_SIZE):
        self._max_size = max_size

    @property
    def max_size(self) -> int:
        return self._max_size

    def validate(self, file: RawFile) -> None:
        """Check type first, then size. Pure; reads no content."""
        content_type = file.content_type or ""
        if not content_type.startswith("image/"):
            raise UnsupportedTypeError(file.content_type)

        # A missing size cannot be proven to be within the limit
        if file.size is None or file.size > self._max_size:
            raise TooLargeError(file.size, self._max_size)


def get_file_validator() -> FileValidator:
    return FileValidator(max_size=get_settings().max_file_size_bytes)
