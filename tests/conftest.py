"""Shared pytest fixtures and configuration for all tests."""

import os
import uuid
from typing import Any

import pytest

# Keep src/main.py and src/lambda_handler.py from building the real app on import
os.environ.setdefault("ENVIRONMENT", "test")

from offer_catalog_service.exceptions import StoreUnavailableError  # noqa: E402
from offer_catalog_service.models.offer_models import Offer, OfferCategory  # noqa: E402
from offer_catalog_service.repositories.offer_store import OfferFilter, OfferStore  # noqa: E402


class InMemoryOfferStore(OfferStore):
    """Dict-backed OfferStore used to check ordering behaviour end to end."""

    def __init__(self, category: OfferCategory = OfferCategory.BARRELS) -> None:
        super().__init__(category)
        self.offers: dict[str, Offer] = {}
        self.fail_shifts = False
        self.shift_calls: list[tuple[OfferFilter, int]] = []

    def find_by_filter(
        self, offer_filter: OfferFilter | None = None, limit: int | None = None, offset: int = 0
    ) -> list[Offer]:
        offer_filter = offer_filter or OfferFilter()
        matched = sorted(
            (offer for offer in self.offers.values() if offer_filter.matches(offer)),
            key=lambda offer: offer.order,
        )
        end = None if limit is None else offset + limit
        return matched[offset:end]

    def count_by_filter(self, offer_filter: OfferFilter | None = None) -> int:
        return len(self.find_by_filter(offer_filter))

    def find_by_id(self, offer_id: str) -> Offer | None:
        return self.offers.get(offer_id)

    def insert(self, fields: dict[str, Any], order: int) -> Offer:
        offer = Offer(id=uuid.uuid4().hex, category=self.category, order=order, **fields)
        self.offers[offer.id] = offer
        return offer

    def update_by_id(self, offer_id: str, changes: dict[str, Any]) -> Offer | None:
        current = self.offers.get(offer_id)
        if current is None:
            return None
        data = current.model_dump()
        data.update(
            {key: value for key, value in changes.items() if value is not None and key not in ("id", "order")}
        )
        self.offers[offer_id] = Offer.model_validate(data)
        return self.offers[offer_id]

    def set_order(self, offer_id: str, order: int) -> Offer | None:
        current = self.offers.get(offer_id)
        if current is None:
            return None
        self.offers[offer_id] = current.model_copy(update={"order": order})
        return self.offers[offer_id]

    def delete_by_id(self, offer_id: str) -> Offer | None:
        return self.offers.pop(offer_id, None)

    def increment_order_where(self, offer_filter: OfferFilter, delta: int) -> int:
        self.shift_calls.append((offer_filter, delta))
        if self.fail_shifts:
            raise StoreUnavailableError("Failed to shift barrels orders")
        matched = [offer for offer in self.offers.values() if offer_filter.matches(offer)]
        for offer in matched:
            self.offers[offer.id] = offer.model_copy(update={"order": offer.order + delta})
        return len(matched)

    def orders(self) -> list[int]:
        """Orders of all offers, ascending."""
        return sorted(offer.order for offer in self.offers.values())

    def order_of(self, offer_id: str) -> int:
        return self.offers[offer_id].order


@pytest.fixture
def offer_store() -> InMemoryOfferStore:
    """Fixture providing an empty in-memory barrel store."""
    return InMemoryOfferStore()


@pytest.fixture
def populated_store(offer_store: InMemoryOfferStore) -> InMemoryOfferStore:
    """Fixture providing a barrel store with five enabled offers at orders 1..5.

    Offer ids are "offer_1" .. "offer_5", matching their initial order.
    """
    for position in range(1, 6):
        offer = Offer(
            id=f"offer_{position}",
            category=OfferCategory.BARRELS,
            order=position,
            enabled=True,
            name=f"Barrel {position}",
        )
        offer_store.offers[offer.id] = offer
    return offer_store


@pytest.fixture
def sample_offer_item() -> dict[str, Any]:
    """Fixture providing a stored offer as returned by DynamoDB."""
    from decimal import Decimal

    return {
        "category": "barrels",
        "offer_id": "offer_abc",
        "order": Decimal("3"),
        "enabled": True,
        "name": "Cedar Barrel",
        "promo_info": "10% off",
        "rating": Decimal("4.5"),
        "buy_link1": {"name": "Shop", "link": "https://shop.example.com", "price": Decimal("899.99")},
        "info_image": {"external_id": "img_1", "image_url": "https://img.example.com/img_1.png"},
    }
