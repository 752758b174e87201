"""Storage contract for category-scoped offer collections.

The order sequencer only talks to this interface. Implementations must apply
``increment_order_where`` as a store-level bulk request rather than a loop of
independent single-item writes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from offer_catalog_service.models.offer_models import Offer, OfferCategory


@dataclass(frozen=True)
class OfferFilter:
    """Filter over the offers of one category.

    Attributes:
        min_order: Lowest matching order, inclusive
        max_order: Highest matching order, inclusive
        exclude_id: Offer id that never matches
        enabled: Match only offers with this enabled flag
    """

    min_order: int | None = None
    max_order: int | None = None
    exclude_id: str | None = None
    enabled: bool | None = None

    def matches(self, offer: Offer) -> bool:
        """Check an offer against the filter."""
        if self.min_order is not None and offer.order < self.min_order:
            return False
        if self.max_order is not None and offer.order > self.max_order:
            return False
        if self.exclude_id is not None and offer.id == self.exclude_id:
            return False
        if self.enabled is not None and offer.enabled != self.enabled:
            return False
        return True


class OfferStore(ABC):
    """Abstract persistence for the offers of a single category."""

    def __init__(self, category: OfferCategory) -> None:
        """Initialize the store.

        Args:
            category: Category whose offers this store holds
        """
        self.category = category

    @abstractmethod
    def find_by_filter(
        self, offer_filter: OfferFilter | None = None, limit: int | None = None, offset: int = 0
    ) -> list[Offer]:
        """Return matching offers sorted by ascending order.

        Args:
            offer_filter: Optional filter, all offers when None
            limit: Maximum number of offers to return
            offset: Number of matching offers to skip

        Returns:
            list: Matching offers (empty list if none)
        """

    @abstractmethod
    def count_by_filter(self, offer_filter: OfferFilter | None = None) -> int:
        """Count matching offers."""

    @abstractmethod
    def find_by_id(self, offer_id: str) -> Offer | None:
        """Return the offer with the given id, None if absent."""

    @abstractmethod
    def insert(self, fields: dict[str, Any], order: int) -> Offer:
        """Insert a new offer and return it with its store-assigned id.

        Args:
            fields: Descriptive offer fields keyed by attribute name
            order: Position assigned by the order sequencer
        """

    @abstractmethod
    def update_by_id(self, offer_id: str, changes: dict[str, Any]) -> Offer | None:
        """Apply field changes and return the updated offer, None if absent.

        ``changes`` never carries ``order``; positions change only through
        ``set_order`` and ``increment_order_where``.
        """

    @abstractmethod
    def set_order(self, offer_id: str, order: int) -> Offer | None:
        """Overwrite a single offer's order, None if absent."""

    @abstractmethod
    def delete_by_id(self, offer_id: str) -> Offer | None:
        """Delete an offer and return the removed record, None if absent."""

    @abstractmethod
    def increment_order_where(self, offer_filter: OfferFilter, delta: int) -> int:
        """Add ``delta`` to the order of every matching offer.

        Returns:
            int: Number of offers shifted
        """
