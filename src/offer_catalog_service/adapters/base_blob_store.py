"""Base adapter for image blob stores.

Following the adapter pattern of the service, expected failures are reported
through return values (None/False) and the catalog service decides whether
they abort the request.
"""

from abc import ABC, abstractmethod

from offer_catalog_service.models.offer_models import ImageUpload, InfoImage


class BlobStore(ABC):
    """Abstract base class for external image storage.

    - upload_image returns None on failure; the caller must not write the
      offer in that case
    - delete_image returns False on failure; deletions are best-effort
    """

    def __init__(self, provider_name: str) -> None:
        """Initialize the blob store adapter.

        Args:
            provider_name: Name of the storage provider (e.g., 'cloudinary')
        """
        self.provider_name = provider_name

    @abstractmethod
    async def upload_image(self, image: ImageUpload, external_id: str | None = None) -> InfoImage | None:
        """Store an image, overwriting ``external_id`` when given.

        Args:
            image: Image content and metadata
            external_id: Existing blob to overwrite, None for a new blob

        Returns:
            InfoImage: Reference to the stored image, or None if the upload failed
        """
        pass

    @abstractmethod
    async def delete_image(self, external_id: str) -> bool:
        """Delete a stored image.

        Args:
            external_id: Blob identifier returned by upload_image

        Returns:
            bool: True if the blob was deleted, False otherwise
        """
        pass
