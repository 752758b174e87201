"""DynamoDB repositories for price range settings and user accounts."""

import logging

from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from offer_catalog_service.exceptions import StoreUnavailableError
from offer_catalog_service.models.account_models import (
    PRICE_RANGE_SETTINGS_ID,
    PriceRange,
    User,
)

logger = logging.getLogger(__name__)


class PriceRangeRepository:
    """Repository for the single price range settings record.

    The record lives in the settings table under ``settings_id = "price-range"``.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB settings table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_price_range(self) -> PriceRange | None:
        """Retrieve the price range record.

        Returns:
            PriceRange if one has been saved, None otherwise
        """
        try:
            response = self.table.get_item(Key={"settings_id": PRICE_RANGE_SETTINGS_ID})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to get price range: {e}")
            raise StoreUnavailableError("Failed to get price range") from e

        if "Item" not in response:
            return None

        return PriceRange.from_dynamodb_item(response["Item"])

    def save_price_range(self, price_range: PriceRange) -> None:
        """Save or overwrite the price range record.

        Args:
            price_range: PriceRange to save
        """
        try:
            self.table.put_item(Item=price_range.to_dynamodb_item())
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to save price range: {e}")
            raise StoreUnavailableError("Failed to save price range") from e


class UserRepository:
    """Repository for user accounts.

    Users are keyed by email, so registering an existing address fails the
    conditional put instead of needing a separate uniqueness index.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB users table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_user_by_email(self, email: str) -> User | None:
        """Retrieve a user by email.

        Args:
            email: Account email address

        Returns:
            User if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"email": email})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to get user: {e}")
            raise StoreUnavailableError("Failed to get user") from e

        if "Item" not in response:
            return None

        return User.from_dynamodb_item(response["Item"])

    def create_user(self, user: User) -> bool:
        """Create a user if the email is not registered yet.

        Args:
            user: User to save

        Returns:
            bool: True if created, False if the email already exists
        """
        try:
            self.table.put_item(
                Item=user.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(email)",
            )
            return True

        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            logger.error(f"Failed to create user: {e}")
            raise StoreUnavailableError("Failed to create user") from e
        except BotoCoreError as e:
            logger.error(f"Failed to create user: {e}")
            raise StoreUnavailableError("Failed to create user") from e
