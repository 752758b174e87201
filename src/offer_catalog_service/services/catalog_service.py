"""Catalog service orchestrating offer CRUD, images, and ordering."""

import asyncio
import logging
import math

from offer_catalog_service.adapters.base_blob_store import BlobStore
from offer_catalog_service.exceptions import AttachmentError, CatalogError, OfferNotFoundError
from offer_catalog_service.models.offer_models import (
    ImageUpload,
    InfoImage,
    Offer,
    OfferCreate,
    OfferPage,
    OfferUpdate,
)
from offer_catalog_service.observability import traced
from offer_catalog_service.observability.metrics import record_attachment_failure
from offer_catalog_service.repositories.offer_store import OfferFilter, OfferStore
from offer_catalog_service.services.order_sequencer import OrderSequencer

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for the offers of one category.

    One instance exists per category. Order changes are delegated to the
    category's OrderSequencer; image storage goes through the BlobStore and
    always happens before the offer write, so a failed upload never leaves a
    partial record behind.
    """

    def __init__(
        self,
        repository: OfferStore,
        blob_store: BlobStore,
        sequencer: OrderSequencer | None = None,
    ) -> None:
        """Initialize the CatalogService.

        Args:
            repository: Category-scoped offer store
            blob_store: Image storage adapter
            sequencer: Order sequencer for the same store (created when omitted)
        """
        self.repository = repository
        self.category = repository.category
        self.blob_store = blob_store
        self.sequencer = sequencer or OrderSequencer(repository)
        self._background_tasks: set[asyncio.Task[None]] = set()

    @traced("catalog.list_offers")
    async def list_offers(self, page: int, page_size: int, include_disabled: bool = False) -> OfferPage:
        """Return one page of offers sorted by order.

        Args:
            page: 1-based page number
            page_size: Offers per page
            include_disabled: Whether disabled offers are listed

        Returns:
            OfferPage with the offers and pagination totals
        """
        offer_filter = None if include_disabled else OfferFilter(enabled=True)
        offers = self.repository.find_by_filter(offer_filter, limit=page_size, offset=(page - 1) * page_size)

        # Totals count every offer in the category, including disabled ones
        total_offers = self.repository.count_by_filter()

        return OfferPage(
            offers=offers,
            current_page=page,
            total_pages=math.ceil(total_offers / page_size),
            total_offers=total_offers,
        )

    async def get_offer(self, offer_id: str) -> Offer:
        """Get a single offer.

        Raises:
            NotFoundError: If the offer does not exist
        """
        offer = self.repository.find_by_id(offer_id)
        if offer is None:
            raise OfferNotFoundError(self.category.item_name)
        return offer

    @traced("catalog.create_offer")
    async def create_offer(self, fields: OfferCreate, image: ImageUpload | None = None) -> Offer:
        """Create an offer, uploading its image first.

        Args:
            fields: Validated offer fields
            image: Optional image to attach

        Returns:
            Offer: The stored offer

        Raises:
            AttachmentError: If the image upload fails (nothing is written)
            OrderOutOfRangeError: If an explicit order is outside ``[1, N + 1]``
            StoreUnavailableError: If the store fails. The order shift is undone
                and the uploaded image deleted before the error propagates
        """
        data = fields.model_dump(exclude={"order"}, exclude_none=True)

        info_image: InfoImage | None = None
        if image is not None:
            info_image = await self._upload_image(image)
            data["info_image"] = info_image.model_dump()

        order: int | None = None
        try:
            order = self.sequencer.assign_on_create(fields.order)
            offer = self.repository.insert(data, order)
        except CatalogError:
            if order is not None and fields.order is not None:
                # Close the room made for an offer that was never written
                logger.warning(
                    f"Insert of {self.category.value} offer at position {order} failed, "
                    "undoing the order shift"
                )
                self.sequencer.compact_on_delete(order)
            if info_image is not None:
                await self._delete_image(info_image.external_id)
            raise

        logger.info(f"Created {self.category.value} offer {offer.id} at position {order}")
        return offer

    @traced("catalog.update_offer")
    async def update_offer(self, offer_id: str, fields: OfferUpdate, image: ImageUpload | None = None) -> Offer:
        """Update offer fields and optionally replace its image.

        A new image overwrites the existing blob so no orphan is left. The
        offer's order is never changed here.

        Raises:
            NotFoundError: If the offer does not exist
            AttachmentError: If the image upload fails (nothing is written)
        """
        existing = self.repository.find_by_id(offer_id)
        if existing is None:
            raise OfferNotFoundError(self.category.item_name)

        changes = fields.model_dump(exclude_unset=True, exclude_none=True)

        if image is not None:
            current_id = existing.info_image.external_id if existing.info_image else None
            info_image = await self._upload_image(image, current_id)
            changes["info_image"] = info_image.model_dump()

        updated = self.repository.update_by_id(offer_id, changes)
        if updated is None:
            raise OfferNotFoundError(self.category.item_name)

        logger.info(f"Updated {self.category.value} offer {offer_id}")
        return updated

    @traced("catalog.delete_offer")
    async def delete_offer(self, offer_id: str) -> Offer:
        """Delete an offer, compact the order sequence, and drop its image.

        The image deletion runs in the background; its outcome does not affect
        the result.

        Returns:
            Offer: The deleted offer as it was stored

        Raises:
            NotFoundError: If the offer does not exist
        """
        deleted = self.repository.delete_by_id(offer_id)
        if deleted is None:
            raise OfferNotFoundError(self.category.item_name)

        self.sequencer.compact_on_delete(deleted.order)

        if deleted.info_image is not None:
            self._schedule_image_deletion(deleted.info_image.external_id)

        logger.info(f"Deleted {self.category.value} offer {offer_id} from position {deleted.order}")
        return deleted

    async def reorder_offer(self, offer_id: str, new_order: int) -> Offer:
        """Move an offer to a new position.

        Raises:
            NotFoundError: If the offer does not exist
            OrderOutOfRangeError: If ``new_order`` is outside ``[1, N]``
        """
        return self.sequencer.reorder(offer_id, new_order)

    async def wait_for_background_tasks(self) -> None:
        """Wait for pending image deletions, e.g. on shutdown."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def _upload_image(self, image: ImageUpload, external_id: str | None = None) -> InfoImage:
        info_image = await self.blob_store.upload_image(image, external_id)
        if info_image is None:
            record_attachment_failure("upload")
            raise AttachmentError("An error occurred while processing the images.")
        return info_image

    def _schedule_image_deletion(self, external_id: str) -> None:
        task = asyncio.create_task(self._delete_image(external_id))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _delete_image(self, external_id: str) -> None:
        try:
            deleted = await self.blob_store.delete_image(external_id)
        except Exception:
            logger.exception(f"Image deletion raised for {external_id}")
            deleted = False

        if not deleted:
            logger.warning(f"Could not delete image {external_id}, blob left orphaned")
            record_attachment_failure("delete")
