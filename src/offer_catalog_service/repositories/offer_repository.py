"""DynamoDB implementation of the offer store.

Table layout:
    partition key ``category``, sort key ``offer_id``,
    local secondary index ``category-order-index`` with sort key ``order``.

Lookups that miss return None while store failures raise
``StoreUnavailableError``, so callers can tell "absent" from "unreachable".
"""

import logging
import uuid
from typing import Any

from boto3.dynamodb.conditions import Attr, ConditionBase, Key
from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from offer_catalog_service.exceptions import StoreUnavailableError
from offer_catalog_service.models.offer_models import (
    Offer,
    OfferCategory,
    offer_fields_to_dynamodb,
)
from offer_catalog_service.repositories.offer_store import OfferFilter, OfferStore

logger = logging.getLogger(__name__)

ORDER_INDEX_NAME = "category-order-index"

# DynamoDB caps a single TransactWriteItems request at 100 actions
TRANSACT_BATCH_SIZE = 100


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoDBOfferRepository(OfferStore):
    """Repository for the offers of one category.

    Order shifts are sent as TransactWriteItems requests, so every batch of up
    to 100 offers is applied all-or-nothing by DynamoDB itself.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        category: OfferCategory,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB offers table
            category: Category this repository is scoped to
        """
        super().__init__(category)
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def find_by_filter(
        self, offer_filter: OfferFilter | None = None, limit: int | None = None, offset: int = 0
    ) -> list[Offer]:
        """Return matching offers sorted by ascending order.

        DynamoDB has no offset, so the index is read in order and sliced.

        Args:
            offer_filter: Optional filter, all offers when None
            limit: Maximum number of offers to return
            offset: Number of matching offers to skip

        Returns:
            list: Matching offers (empty list if none)
        """
        try:
            items = self._query_all(**self._build_query(offer_filter or OfferFilter()))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to query {self.category.value} offers: {e}")
            raise StoreUnavailableError(f"Failed to query {self.category.value} offers") from e

        end = None if limit is None else offset + limit
        return [Offer.from_dynamodb_item(item) for item in items[offset:end]]

    def count_by_filter(self, offer_filter: OfferFilter | None = None) -> int:
        """Count matching offers.

        Args:
            offer_filter: Optional filter, all offers when None

        Returns:
            int: Number of matching offers
        """
        kwargs = self._build_query(offer_filter or OfferFilter())
        kwargs["Select"] = "COUNT"
        total = 0

        try:
            while True:
                response = self.table.query(**kwargs)
                total += response.get("Count", 0)
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return total
                kwargs["ExclusiveStartKey"] = last_key

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to count {self.category.value} offers: {e}")
            raise StoreUnavailableError(f"Failed to count {self.category.value} offers") from e

    def find_by_id(self, offer_id: str) -> Offer | None:
        """Retrieve an offer by id.

        Args:
            offer_id: Offer identifier

        Returns:
            Offer if found, None otherwise
        """
        try:
            response = self.table.get_item(Key=self._key(offer_id))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to get offer {offer_id}: {e}")
            raise StoreUnavailableError(f"Failed to get offer {offer_id}") from e

        if "Item" not in response:
            return None

        return Offer.from_dynamodb_item(response["Item"])

    def insert(self, fields: dict[str, Any], order: int) -> Offer:
        """Insert a new offer with a generated id.

        Args:
            fields: Descriptive offer fields keyed by attribute name
            order: Position assigned by the order sequencer

        Returns:
            Offer: The stored offer
        """
        offer = Offer(id=uuid.uuid4().hex, category=self.category, order=order, **fields)

        try:
            self.table.put_item(
                Item=offer.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(offer_id)",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to insert {self.category.value} offer: {e}")
            raise StoreUnavailableError(f"Failed to insert {self.category.value} offer") from e

        return offer

    def update_by_id(self, offer_id: str, changes: dict[str, Any]) -> Offer | None:
        """Apply field changes to an existing offer.

        Args:
            offer_id: Offer identifier
            changes: Attribute values to set; None values are ignored

        Returns:
            The updated Offer, None if the offer does not exist
        """
        values = offer_fields_to_dynamodb(
            {key: value for key, value in changes.items() if key not in ("order", "id", "category")}
        )
        if not values:
            return self.find_by_id(offer_id)

        names: dict[str, str] = {}
        attribute_values: dict[str, Any] = {}
        assignments = []
        for index, (attribute, value) in enumerate(values.items()):
            names[f"#f{index}"] = attribute
            attribute_values[f":v{index}"] = value
            assignments.append(f"#f{index} = :v{index}")

        return self._update_returning_offer(
            offer_id,
            UpdateExpression="SET " + ", ".join(assignments),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=attribute_values,
        )

    def set_order(self, offer_id: str, order: int) -> Offer | None:
        """Overwrite a single offer's order.

        Args:
            offer_id: Offer identifier
            order: New position

        Returns:
            The updated Offer, None if the offer does not exist
        """
        return self._update_returning_offer(
            offer_id,
            UpdateExpression="SET #order = :order",
            ExpressionAttributeNames={"#order": "order"},
            ExpressionAttributeValues={":order": order},
        )

    def delete_by_id(self, offer_id: str) -> Offer | None:
        """Delete an offer.

        Args:
            offer_id: Offer identifier

        Returns:
            The removed Offer as stored at deletion time, None if absent
        """
        try:
            response = self.table.delete_item(
                Key=self._key(offer_id),
                ConditionExpression="attribute_exists(offer_id)",
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                return None
            logger.error(f"Failed to delete offer {offer_id}: {e}")
            raise StoreUnavailableError(f"Failed to delete offer {offer_id}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to delete offer {offer_id}: {e}")
            raise StoreUnavailableError(f"Failed to delete offer {offer_id}") from e

        return Offer.from_dynamodb_item(response["Attributes"])

    def increment_order_where(self, offer_filter: OfferFilter, delta: int) -> int:
        """Add ``delta`` to the order of every matching offer.

        Matching offers are read from the order index, then shifted with
        TransactWriteItems in batches of at most 100 actions.

        Args:
            offer_filter: Which offers to shift
            delta: Amount added to each order (negative to shift down)

        Returns:
            int: Number of offers shifted
        """
        kwargs = self._build_query(offer_filter)
        kwargs["ProjectionExpression"] = "offer_id"

        try:
            offer_ids = [item["offer_id"] for item in self._query_all(**kwargs)]
            client = self.dynamodb.meta.client
            for start in range(0, len(offer_ids), TRANSACT_BATCH_SIZE):
                batch = offer_ids[start : start + TRANSACT_BATCH_SIZE]
                client.transact_write_items(
                    TransactItems=[self._shift_action(offer_id, delta) for offer_id in batch]
                )

        except (ClientError, BotoCoreError) as e:
            logger.error(
                f"Failed to shift {self.category.value} orders by {delta} for {offer_filter}: {e}"
            )
            raise StoreUnavailableError(f"Failed to shift {self.category.value} orders") from e

        logger.debug(f"Shifted {len(offer_ids)} {self.category.value} offers by {delta}")
        return len(offer_ids)

    def _key(self, offer_id: str) -> dict[str, str]:
        return {"category": self.category.value, "offer_id": offer_id}

    def _shift_action(self, offer_id: str, delta: int) -> dict[str, Any]:
        return {
            "Update": {
                "TableName": self.table_name,
                "Key": self._key(offer_id),
                "UpdateExpression": "SET #order = #order + :delta",
                "ConditionExpression": "attribute_exists(offer_id)",
                "ExpressionAttributeNames": {"#order": "order"},
                "ExpressionAttributeValues": {":delta": delta},
            }
        }

    def _build_query(self, offer_filter: OfferFilter) -> dict[str, Any]:
        """Translate an OfferFilter into query arguments on the order index."""
        key_condition = Key("category").eq(self.category.value)
        if offer_filter.min_order is not None and offer_filter.max_order is not None:
            key_condition = key_condition & Key("order").between(
                offer_filter.min_order, offer_filter.max_order
            )
        elif offer_filter.min_order is not None:
            key_condition = key_condition & Key("order").gte(offer_filter.min_order)
        elif offer_filter.max_order is not None:
            key_condition = key_condition & Key("order").lte(offer_filter.max_order)

        conditions: list[ConditionBase] = []
        if offer_filter.exclude_id is not None:
            conditions.append(Attr("offer_id").ne(offer_filter.exclude_id))
        if offer_filter.enabled is not None:
            conditions.append(Attr("enabled").eq(offer_filter.enabled))

        kwargs: dict[str, Any] = {
            "IndexName": ORDER_INDEX_NAME,
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": True,
        }
        if conditions:
            filter_expression = conditions[0]
            for condition in conditions[1:]:
                filter_expression = filter_expression & condition
            kwargs["FilterExpression"] = filter_expression

        return kwargs

    def _query_all(self, **kwargs: Any) -> list[dict[str, Any]]:
        """Run a query and follow LastEvaluatedKey until exhausted."""
        items: list[dict[str, Any]] = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _update_returning_offer(self, offer_id: str, **update_kwargs: Any) -> Offer | None:
        try:
            response = self.table.update_item(
                Key=self._key(offer_id),
                ConditionExpression="attribute_exists(offer_id)",
                ReturnValues="ALL_NEW",
                **update_kwargs,
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                return None
            logger.error(f"Failed to update offer {offer_id}: {e}")
            raise StoreUnavailableError(f"Failed to update offer {offer_id}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to update offer {offer_id}: {e}")
            raise StoreUnavailableError(f"Failed to update offer {offer_id}") from e

        return Offer.from_dynamodb_item(response["Attributes"])
