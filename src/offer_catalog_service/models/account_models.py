"""Price range settings and user account models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

PRICE_RANGE_SETTINGS_ID = "price-range"


class PriceRange(BaseModel):
    """Price range strings displayed per category.

    There is at most one record per deployment, stored under a fixed
    ``settings_id`` key.
    """

    portables: str = Field(default="70-100", description="Portable price range")
    barrels: str = Field(default="500-1500", description="Barrel price range")
    tubs: str = Field(default="1000-20,000", description="Tub price range")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format."""
        return {
            "settings_id": PRICE_RANGE_SETTINGS_ID,
            "portables": self.portables,
            "barrels": self.barrels,
            "tubs": self.tubs,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "PriceRange":
        """Create PriceRange from DynamoDB item."""
        data = {key: item[key] for key in ("portables", "barrels", "tubs") if key in item}
        return cls(**data)


class PriceRangeUpdate(BaseModel):
    """Partial price range update."""

    model_config = ConfigDict(extra="forbid")

    portables: str | None = None
    barrels: str | None = None
    tubs: str | None = None


class UserRegistration(BaseModel):
    """Registration request body."""

    name: str = Field(..., min_length=3, max_length=255)
    email: EmailStr = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=255)


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=255)


class User(BaseModel):
    """Stored user account.

    Stored in DynamoDB with email as partition key, which makes the uniqueness
    check part of the conditional put.
    """

    id: str = Field(..., description="User identifier")
    name: str
    email: str
    password_hash: str

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format."""
        return {
            "email": self.email,
            "user_id": self.id,
            "name": self.name,
            "password_hash": self.password_hash,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "User":
        """Create User from DynamoDB item."""
        return cls(
            id=item["user_id"],
            name=item["name"],
            email=item["email"],
            password_hash=item["password_hash"],
        )


class UserPublic(BaseModel):
    """User fields safe to return to clients."""

    id: str
    name: str
    email: str
