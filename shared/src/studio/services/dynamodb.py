"""Thin DynamoDB access layer shared by the repositories.

Every table name is prefixed with ``DYNAMODB_TABLE_PREFIX`` (default
``studio-{ENVIRONMENT}``), so callers pass short names such as
``payment-transactions`` or ``webhook-logs``. Reads follow pagination;
conditional writes report a failed condition as a return value instead of
raising.
"""

import os
from typing import Any, Callable, Iterator

import boto3
from boto3.dynamodb.conditions import ConditionBase, Key
from botocore.exceptions import ClientError

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

# Reused across warm Lambda invocations
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use.

    Args:
        environment: Environment name, honoured only by the first call
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Drop the cached instance so the next call builds a new one.

    Tests call this so the service is created inside the moto context.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def _is_condition_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


class DynamoDBService:
    """Row-level operations on the service's prefixed tables."""

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX", f"studio-{self.environment}")
        self._resource = boto3.resource("dynamodb")

    def table_name(self, table: str) -> str:
        """Full physical name of a table."""
        return f"{self.name_prefix}-{table}"

    def _table(self, table: str) -> Any:
        return self._resource.Table(self.table_name(table))

    # Single-item operations

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Fetch one item by primary key, or None when absent."""
        item: dict[str, Any] | None = self._table(table).get_item(Key=key).get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | ConditionBase | None = None,
    ) -> bool:
        """Write a whole item.

        Returns:
            False when ``condition_expression`` rejected the write
        """
        request: dict[str, Any] = {"Item": item}
        if condition_expression is not None:
            request["ConditionExpression"] = condition_expression
        try:
            self._table(table).put_item(**request)
        except ClientError as e:
            if _is_condition_failure(e):
                return False
            raise
        return True

    def update_fields(
        self,
        table: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        condition_expression: str | ConditionBase | None = None,
    ) -> dict[str, Any] | None:
        """SET the given top-level attributes, replacing their values.

        Names are always aliased, so reserved words like ``status`` are safe.
        Map values replace the stored map as a whole.

        Args:
            table: Short table name
            key: Primary key
            fields: Attribute name to new value
            condition_expression: Optional guard, e.g. ``attribute_exists(pk)``

        Returns:
            The item after the update, or None when the guard failed
        """
        if not fields:
            return self.get_item(table, key)

        names = {f"#a{i}": name for i, name in enumerate(fields)}
        values = {f":v{i}": value for i, value in enumerate(fields.values())}
        expression = "SET " + ", ".join(f"#a{i} = :v{i}" for i in range(len(fields)))

        request: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": expression,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "ALL_NEW",
        }
        if condition_expression is not None:
            request["ConditionExpression"] = condition_expression
        try:
            response = self._table(table).update_item(**request)
        except ClientError as e:
            if _is_condition_failure(e):
                return None
            raise
        attributes: dict[str, Any] = response.get("Attributes", {})
        return attributes

    # Multi-item reads

    def _paginate(self, call: Callable[..., dict[str, Any]], **request: Any) -> Iterator[dict]:
        while True:
            response = call(**request)
            yield from response.get("Items", [])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            request["ExclusiveStartKey"] = last_key

    def scan(
        self,
        table: str,
        filter_expression: ConditionBase | None = None,
    ) -> list[dict[str, Any]]:
        """Read every item of a table, optionally filtered."""
        request: dict[str, Any] = {}
        if filter_expression is not None:
            request["FilterExpression"] = filter_expression
        return list(self._paginate(self._table(table).scan, **request))

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
        filter_expression: ConditionBase | None = None,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """Read all items of a GSI partition.

        Args:
            table: Short table name
            index_name: GSI name
            partition_key_name: GSI hash key attribute
            partition_key_value: Value to match
            filter_expression: Applied after the key condition
            scan_index_forward: False for descending range key order

        Returns:
            Matching items in index order
        """
        request: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(partition_key_name).eq(partition_key_value),
            "ScanIndexForward": scan_index_forward,
        }
        if filter_expression is not None:
            request["FilterExpression"] = filter_expression
        return list(self._paginate(self._table(table).query, **request))
