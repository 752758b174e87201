"""Offer catalog models.

Offers live in one DynamoDB table keyed by (category, offer_id). The ``order``
attribute is the display position inside a category and is managed exclusively
by the order sequencer.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OfferCategory(str, Enum):
    """Enumeration of catalog categories."""

    BARRELS = "barrels"
    PORTABLES = "portables"
    TUBS = "tubs"

    @property
    def item_name(self) -> str:
        """Singular name used in messages, e.g. "barrel"."""
        return self.value.removesuffix("s")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BuyLink(CamelModel):
    """Shop link with a display name and price."""

    name: str | None = None
    link: str | None = None
    price: float | None = None


class InfoImage(CamelModel):
    """Reference to an image stored in the blob store."""

    external_id: str = Field(..., description="Blob store public identifier")
    image_url: str = Field(..., description="Public URL of the stored image")


class Offer(CamelModel):
    """A catalog offer.

    Stored in DynamoDB with (category, offer_id) as composite key and
    ``category-order-index`` as local secondary index on ``order``.
    """

    id: str = Field(..., description="Store-assigned offer identifier")
    category: OfferCategory = Field(..., description="Catalog category")
    order: int = Field(..., description="1-based display position in the category", ge=1)
    enabled: bool = Field(default=False, description="Whether the offer is publicly listed")
    info_image: InfoImage | None = None
    name: str | None = None
    buy_link1: BuyLink | None = None
    buy_link2: BuyLink | None = None
    cons: str | None = None
    pros: str | None = None
    delivery_time: str | None = None
    dimensions: str | None = None
    overview: str | None = None
    promo_info: str | None = None
    rating: float | None = Field(None, ge=0, le=5)
    review: str | None = None
    terms: str | None = None

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "category": self.category.value,
            "offer_id": self.id,
            "order": self.order,
            "enabled": self.enabled,
        }
        item.update(offer_fields_to_dynamodb(self.model_dump(exclude={"id", "category", "order", "enabled"})))
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Offer":
        """Create Offer from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Offer: Parsed model instance
        """
        data: dict[str, Any] = {
            "id": item["offer_id"],
            "category": OfferCategory(item["category"]),
            "order": int(item["order"]),
            "enabled": bool(item.get("enabled", False)),
        }

        for field_name in OFFER_FIELD_NAMES:
            if field_name in item:
                data[field_name] = _from_dynamodb_value(item[field_name])

        return cls(**data)


# Descriptive attributes, excluding the keys and the order/enabled flags
OFFER_FIELD_NAMES = (
    "info_image",
    "name",
    "buy_link1",
    "buy_link2",
    "cons",
    "pros",
    "delivery_time",
    "dimensions",
    "overview",
    "promo_info",
    "rating",
    "review",
    "terms",
)


class OfferUpdate(CamelModel):
    """Offer fields accepted in edit mode; every field is optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    buy_link1: BuyLink | None = None
    buy_link2: BuyLink | None = None
    cons: str | None = None
    pros: str | None = None
    delivery_time: str | None = None
    dimensions: str | None = None
    enabled: bool | None = None
    name: str | None = None
    overview: str | None = None
    promo_info: str | None = Field(None, max_length=20)
    rating: float | None = Field(None, ge=0, le=5)
    review: str | None = None
    terms: str | None = None


class RequiredBuyLink(CamelModel):
    """Primary shop link; all parts are required on create."""

    name: str
    link: str
    price: float


class OfferCreate(OfferUpdate):
    """Offer fields accepted on create.

    ``order`` is optional; when omitted the offer is appended at the end.
    """

    buy_link1: RequiredBuyLink  # type: ignore[assignment]
    name: str  # type: ignore[assignment]
    promo_info: str = Field(..., max_length=20)  # type: ignore[assignment]
    order: int | None = Field(None, ge=1)


class ReorderRequest(BaseModel):
    """Body of a reorder request."""

    id: str = Field(..., min_length=1)
    order: int = Field(..., ge=1)


class OfferPage(CamelModel):
    """A page of offers returned by list queries."""

    offers: list[Offer]
    current_page: int
    total_pages: int
    total_offers: int


@dataclass
class ImageUpload:
    """An uploaded image file awaiting storage.

    Attributes:
        filename: Original file name
        content_type: MIME type reported by the client
        data: Raw file content
    """

    filename: str
    content_type: str
    data: bytes


def offer_fields_to_dynamodb(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert descriptive offer fields to DynamoDB-compatible values.

    DynamoDB rejects floats, so numbers are stored as Decimal. None values are
    dropped.

    Args:
        fields: Snake-case field mapping (nested models already dumped)

    Returns:
        dict: Converted mapping
    """
    return {key: _to_dynamodb_value(value) for key, value in fields.items() if value is not None}


def _to_dynamodb_value(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _to_dynamodb_value(inner) for key, inner in value.items() if inner is not None}
    return value


def _from_dynamodb_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {key: _from_dynamodb_value(inner) for key, inner in value.items()}
    return value
