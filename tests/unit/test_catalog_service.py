"""Unit tests for the catalog service."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import InMemoryOfferStore
from offer_catalog_service.adapters.base_blob_store import BlobStore
from offer_catalog_service.exceptions import (
    AttachmentError,
    NotFoundError,
    OrderOutOfRangeError,
    StoreUnavailableError,
)
from offer_catalog_service.models.offer_models import (
    ImageUpload,
    InfoImage,
    OfferCategory,
    OfferCreate,
    OfferUpdate,
)
from offer_catalog_service.services.catalog_service import CatalogService
from offer_catalog_service.services.order_sequencer import OrderSequencer


def _create_fields(**overrides: object) -> OfferCreate:
    data: dict[str, object] = {
        "name": "Cedar Barrel",
        "promoInfo": "10% off",
        "buyLink1": {"name": "Shop", "link": "https://shop.example.com", "price": 899.0},
    }
    data.update(overrides)
    return OfferCreate.model_validate(data)


@pytest.mark.unit
class TestCatalogService:
    """Test suite for CatalogService."""

    @pytest.fixture
    def mock_blob_store(self) -> MagicMock:
        """Create a mock blob store."""
        blob_store = MagicMock(spec=BlobStore)
        blob_store.upload_image = AsyncMock(
            return_value=InfoImage(external_id="img_new", image_url="https://img.example.com/img_new.png")
        )
        blob_store.delete_image = AsyncMock(return_value=True)
        return blob_store

    @pytest.fixture
    def image(self) -> ImageUpload:
        """Sample PNG upload."""
        return ImageUpload(filename="barrel.png", content_type="image/png", data=b"\x89PNG")

    @pytest.fixture
    def service(self, populated_store: InMemoryOfferStore, mock_blob_store: MagicMock) -> CatalogService:
        """Create a CatalogService over the populated store."""
        return CatalogService(repository=populated_store, blob_store=mock_blob_store)

    def test_service_initialization(self, offer_store: InMemoryOfferStore, mock_blob_store: MagicMock) -> None:
        """Test that the service takes its category from the store."""
        service = CatalogService(repository=offer_store, blob_store=mock_blob_store)

        assert service.category == OfferCategory.BARRELS
        assert service.sequencer.store is offer_store

    @pytest.mark.asyncio
    async def test_list_offers_pagination(self, offer_store: InMemoryOfferStore, mock_blob_store: MagicMock) -> None:
        """Test that page 3 of 25 offers at size 10 holds the last 5."""
        for position in range(1, 26):
            offer_store.insert({"name": f"Barrel {position}", "enabled": True}, position)
        service = CatalogService(repository=offer_store, blob_store=mock_blob_store)

        page = await service.list_offers(page=3, page_size=10)

        assert [offer.order for offer in page.offers] == [21, 22, 23, 24, 25]
        assert page.current_page == 3
        assert page.total_pages == 3
        assert page.total_offers == 25

    @pytest.mark.asyncio
    async def test_list_offers_hides_disabled_but_counts_them(
        self, offer_store: InMemoryOfferStore, mock_blob_store: MagicMock
    ) -> None:
        """Test that disabled offers are filtered out while the total stays unfiltered."""
        for position, enabled in enumerate([True, False, True, False, True], start=1):
            offer_store.insert({"name": f"Barrel {position}", "enabled": enabled}, position)
        service = CatalogService(repository=offer_store, blob_store=mock_blob_store)

        page = await service.list_offers(page=1, page_size=10)
        everything = await service.list_offers(page=1, page_size=10, include_disabled=True)

        assert [offer.order for offer in page.offers] == [1, 3, 5]
        assert page.total_offers == 5
        assert len(everything.offers) == 5

    @pytest.mark.asyncio
    async def test_list_offers_empty_category(self, offer_store: InMemoryOfferStore, mock_blob_store: MagicMock) -> None:
        """Test listing an empty category."""
        service = CatalogService(repository=offer_store, blob_store=mock_blob_store)

        page = await service.list_offers(page=1, page_size=10)

        assert page.offers == []
        assert page.total_pages == 0
        assert page.total_offers == 0

    @pytest.mark.asyncio
    async def test_get_offer_not_found(self, service: CatalogService) -> None:
        """Test that a missing offer raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.get_offer("missing")

    @pytest.mark.asyncio
    async def test_create_offer_appends(self, service: CatalogService, populated_store: InMemoryOfferStore) -> None:
        """Test that a created offer without order is appended."""
        offer = await service.create_offer(_create_fields())

        assert offer.order == 6
        assert offer.name == "Cedar Barrel"
        assert offer.buy_link1 is not None and offer.buy_link1.price == 899.0
        assert populated_store.find_by_id(offer.id) == offer

    @pytest.mark.asyncio
    async def test_create_offer_with_image(
        self, service: CatalogService, mock_blob_store: MagicMock, image: ImageUpload
    ) -> None:
        """Test that the image is uploaded as a new blob and referenced by the offer."""
        offer = await service.create_offer(_create_fields(), image)

        mock_blob_store.upload_image.assert_called_once_with(image, None)
        assert offer.info_image == InfoImage(external_id="img_new", image_url="https://img.example.com/img_new.png")

    @pytest.mark.asyncio
    async def test_create_offer_attachment_failure_persists_nothing(
        self,
        service: CatalogService,
        populated_store: InMemoryOfferStore,
        mock_blob_store: MagicMock,
        image: ImageUpload,
    ) -> None:
        """Test that a failed upload raises AttachmentError and writes nothing."""
        mock_blob_store.upload_image.return_value = None

        with pytest.raises(AttachmentError):
            await service.create_offer(_create_fields(), image)

        assert populated_store.count_by_filter() == 5
        assert populated_store.shift_calls == []

    @pytest.mark.asyncio
    async def test_create_offer_out_of_range_discards_uploaded_image(
        self,
        service: CatalogService,
        populated_store: InMemoryOfferStore,
        mock_blob_store: MagicMock,
        image: ImageUpload,
    ) -> None:
        """Test that an invalid explicit order drops the image uploaded for it."""
        with pytest.raises(OrderOutOfRangeError):
            await service.create_offer(_create_fields(order=9), image)

        await service.wait_for_background_tasks()

        mock_blob_store.delete_image.assert_awaited_once_with("img_new")
        assert populated_store.count_by_filter() == 5

    @pytest.mark.asyncio
    async def test_create_offer_insert_failure_undoes_shift(
        self, service: CatalogService, populated_store: InMemoryOfferStore
    ) -> None:
        """Test that a failed insert at an explicit order leaves 1..N intact."""
        populated_store.insert = MagicMock(side_effect=StoreUnavailableError("Failed to insert barrels offer"))

        with pytest.raises(StoreUnavailableError):
            await service.create_offer(_create_fields(order=2))

        assert populated_store.orders() == [1, 2, 3, 4, 5]
        assert populated_store.order_of("offer_2") == 2
        assert OrderSequencer(populated_store).find_gaps() == []

    @pytest.mark.asyncio
    async def test_create_offer_insert_failure_deletes_uploaded_image(
        self,
        service: CatalogService,
        populated_store: InMemoryOfferStore,
        mock_blob_store: MagicMock,
        image: ImageUpload,
    ) -> None:
        """Test that the image uploaded for a failed insert is removed before the error is raised."""
        populated_store.insert = MagicMock(side_effect=StoreUnavailableError("Failed to insert barrels offer"))

        with pytest.raises(StoreUnavailableError):
            await service.create_offer(_create_fields(), image)

        mock_blob_store.delete_image.assert_awaited_once_with("img_new")
        assert populated_store.orders() == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_create_offer_count_failure_deletes_uploaded_image(
        self,
        service: CatalogService,
        populated_store: InMemoryOfferStore,
        mock_blob_store: MagicMock,
        image: ImageUpload,
    ) -> None:
        """Test that a failing count after upload does not orphan the image."""
        populated_store.count_by_filter = MagicMock(side_effect=StoreUnavailableError("Failed to count barrels offers"))

        with pytest.raises(StoreUnavailableError):
            await service.create_offer(_create_fields(order=2), image)

        mock_blob_store.delete_image.assert_awaited_once_with("img_new")
        assert populated_store.shift_calls == []

    @pytest.mark.asyncio
    async def test_create_offer_failed_undo_is_reported(
        self, service: CatalogService, populated_store: InMemoryOfferStore
    ) -> None:
        """Test that an undo shift that also fails is counted and leaves a reported gap."""

        def fail_insert(fields: dict[str, object], order: int) -> None:
            populated_store.fail_shifts = True
            raise StoreUnavailableError("Failed to insert barrels offer")

        populated_store.insert = MagicMock(side_effect=fail_insert)

        with patch("offer_catalog_service.services.order_sequencer.record_compaction_failure") as mock_record:
            with pytest.raises(StoreUnavailableError):
                await service.create_offer(_create_fields(order=2))

        mock_record.assert_called_once_with("barrels")
        assert OrderSequencer(populated_store).find_gaps() == [2]

    @pytest.mark.asyncio
    async def test_update_offer_keeps_order(self, service: CatalogService, populated_store: InMemoryOfferStore) -> None:
        """Test that updates change fields but never the order."""
        updated = await service.update_offer("offer_2", OfferUpdate(name="Renamed", rating=4.0))

        assert updated.name == "Renamed"
        assert updated.rating == 4.0
        assert updated.order == 2
        assert populated_store.orders() == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_update_offer_overwrites_existing_image(
        self,
        service: CatalogService,
        populated_store: InMemoryOfferStore,
        mock_blob_store: MagicMock,
        image: ImageUpload,
    ) -> None:
        """Test that a new image overwrites the offer's current blob."""
        populated_store.offers["offer_1"] = populated_store.offers["offer_1"].model_copy(
            update={"info_image": InfoImage(external_id="img_old", image_url="https://img.example.com/old.png")}
        )

        updated = await service.update_offer("offer_1", OfferUpdate(), image)

        mock_blob_store.upload_image.assert_called_once_with(image, "img_old")
        assert updated.info_image is not None
        assert updated.info_image.external_id == "img_new"

    @pytest.mark.asyncio
    async def test_update_offer_not_found(
        self, service: CatalogService, mock_blob_store: MagicMock, image: ImageUpload
    ) -> None:
        """Test that updating a missing offer raises before any upload."""
        with pytest.raises(NotFoundError):
            await service.update_offer("missing", OfferUpdate(name="x"), image)

        mock_blob_store.upload_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_offer_attachment_failure(
        self,
        service: CatalogService,
        populated_store: InMemoryOfferStore,
        mock_blob_store: MagicMock,
        image: ImageUpload,
    ) -> None:
        """Test that a failed upload leaves the offer untouched."""
        mock_blob_store.upload_image.return_value = None

        with pytest.raises(AttachmentError):
            await service.update_offer("offer_1", OfferUpdate(name="Renamed"), image)

        assert populated_store.offers["offer_1"].name == "Barrel 1"

    @pytest.mark.asyncio
    async def test_delete_offer_compacts_and_drops_image(
        self, service: CatalogService, populated_store: InMemoryOfferStore, mock_blob_store: MagicMock
    ) -> None:
        """Test that delete returns the record, compacts, and deletes the blob."""
        populated_store.offers["offer_2"] = populated_store.offers["offer_2"].model_copy(
            update={"info_image": InfoImage(external_id="img_2", image_url="https://img.example.com/2.png")}
        )

        deleted = await service.delete_offer("offer_2")
        await service.wait_for_background_tasks()

        assert deleted.id == "offer_2"
        assert deleted.order == 2
        assert populated_store.orders() == [1, 2, 3, 4]
        mock_blob_store.delete_image.assert_awaited_once_with("img_2")

    @pytest.mark.asyncio
    async def test_delete_offer_blob_failure_does_not_fail_request(
        self, service: CatalogService, populated_store: InMemoryOfferStore, mock_blob_store: MagicMock
    ) -> None:
        """Test that a failed blob deletion leaves the delete in place."""
        populated_store.offers["offer_1"] = populated_store.offers["offer_1"].model_copy(
            update={"info_image": InfoImage(external_id="img_1", image_url="https://img.example.com/1.png")}
        )
        mock_blob_store.delete_image.side_effect = RuntimeError("connection reset")

        deleted = await service.delete_offer("offer_1")
        await service.wait_for_background_tasks()

        assert deleted.id == "offer_1"
        assert populated_store.find_by_id("offer_1") is None
        assert populated_store.orders() == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_delete_offer_without_image(
        self, service: CatalogService, mock_blob_store: MagicMock
    ) -> None:
        """Test that offers without an image skip the blob store."""
        await service.delete_offer("offer_5")
        await service.wait_for_background_tasks()

        mock_blob_store.delete_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_offer_not_found(self, service: CatalogService, populated_store: InMemoryOfferStore) -> None:
        """Test that deleting a missing offer raises and does not shift anything."""
        with pytest.raises(NotFoundError):
            await service.delete_offer("missing")

        assert populated_store.shift_calls == []

    @pytest.mark.asyncio
    async def test_reorder_offer(self, service: CatalogService, populated_store: InMemoryOfferStore) -> None:
        """Test that reorder delegates to the sequencer."""
        moved = await service.reorder_offer("offer_1", 5)

        assert moved.order == 5
        assert populated_store.order_of("offer_5") == 4

    @pytest.mark.asyncio
    async def test_not_found_message_names_category_item(
        self, mock_blob_store: MagicMock
    ) -> None:
        """Test the not found message for a tubs service."""
        service = CatalogService(repository=InMemoryOfferStore(OfferCategory.TUBS), blob_store=mock_blob_store)

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_offer("missing")

        assert exc_info.value.message == "The tub with the given ID does not exist."
