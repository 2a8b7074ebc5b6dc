from abc import ABC, abstractmethod
from typing import Optional

from cutout.images import ImageRepresentation


class RemovalBackend(ABC):
    """Abstract base class for background removal backends.

    All backends must implement remove_background which takes an encoded
    image and returns the processed image.
    """

    @abstractmethod
    async def remove_background(self, image: ImageRepresentation) -> ImageRepresentation:
        """Remove the background of an image.

        Args:
            image: The decoded upload

        Returns:
            The processed image

        Raises:
            RemovalError: If the backend cannot produce a result
        """
        ...


class RemovalError(Exception):
    """Raised when background removal fails."""
    pass


class NetworkError(RemovalError):
    """The removal service could not be reached."""
    pass


class ServiceError(RemovalError):
    """The removal service answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigMissingError(RemovalError):
    """No usable API credential is configured."""
    pass
