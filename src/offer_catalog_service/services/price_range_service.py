"""Service for the price range settings record."""

import logging

from offer_catalog_service.models.account_models import PriceRange, PriceRangeUpdate
from offer_catalog_service.repositories.account_repositories import PriceRangeRepository

logger = logging.getLogger(__name__)


class PriceRangeService:
    """Reads and upserts the single price range record."""

    def __init__(self, price_range_repository: PriceRangeRepository) -> None:
        """Initialize the PriceRangeService.

        Args:
            price_range_repository: Repository for the settings record
        """
        self.price_range_repository = price_range_repository

    async def get_price_range(self) -> tuple[PriceRange, bool]:
        """Return the price range, creating the default record if missing.

        Returns:
            Tuple of (price_range, created)
        """
        existing = self.price_range_repository.get_price_range()
        if existing is not None:
            return existing, False

        price_range = PriceRange()
        self.price_range_repository.save_price_range(price_range)
        logger.info("Created default price range record")
        return price_range, True

    async def update_price_range(self, changes: PriceRangeUpdate) -> tuple[PriceRange, bool]:
        """Apply the provided fields, creating the record if missing.

        Args:
            changes: Fields to overwrite; omitted fields keep their value

        Returns:
            Tuple of (price_range, created)
        """
        existing = self.price_range_repository.get_price_range()
        base = existing if existing is not None else PriceRange()

        price_range = base.model_copy(update=changes.model_dump(exclude_none=True))
        self.price_range_repository.save_price_range(price_range)
        return price_range, existing is None
