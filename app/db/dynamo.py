import logging
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

PENDING_EXPENSE = "pending_expense"


class ExpenseStore:
    """
    DynamoDB access for users, expenses, chat messages and conversation state.
    Expenses and messages use '<ISO timestamp>_<hex>' range keys so that a key
    range query doubles as a time window.
    """

    def __init__(self, dynamodb=None) -> None:
        if dynamodb is None:
            dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)
        self.users_table = dynamodb.Table(settings.DYNAMO_USERS_TABLE)
        self.expenses_table = dynamodb.Table(settings.DYNAMO_EXPENSES_TABLE)
        self.messages_table = dynamodb.Table(settings.DYNAMO_MESSAGES_TABLE)
        self.state_table = dynamodb.Table(settings.DYNAMO_STATE_TABLE)

    # Users

    def get_user_by_email(self, email: str) -> Optional[dict]:
        """Query the Users table by email (assumes a GSI exists on email)."""
        try:
            response = self.users_table.query(
                IndexName="email-index",
                KeyConditionExpression=Key("email").eq(email.lower()),
            )
            return _from_dynamo(response["Items"][0]) if response["Items"] else None
        except ClientError as e:
            logger.error(f"get_user_by_email failed: {e.response['Error']['Message']}")
            return None

    def get_user_by_id(self, user_id: str) -> Optional[dict]:
        try:
            response = self.users_table.get_item(Key={"user_id": user_id})
            item = response.get("Item")
            return _from_dynamo(item) if item else None
        except ClientError as e:
            logger.error(f"get_user_by_id failed: {e.response['Error']['Message']}")
            return None

    def put_user(self, user_item: dict) -> bool:
        try:
            self.users_table.put_item(Item=_convert_for_dynamo(user_item))
            return True
        except ClientError as e:
            logger.error(f"put_user failed: {e.response['Error']['Message']}")
            return False

    def update_user(self, user_id: str, updates: dict) -> Optional[dict]:
        return self._update(self.users_table, {"user_id": user_id}, updates, "update_user")

    # Expenses

    def put_expense(self, expense_item: dict) -> bool:
        try:
            self.expenses_table.put_item(Item=_convert_for_dynamo(expense_item))
            return True
        except ClientError as e:
            logger.error(f"put_expense failed: {e.response['Error']['Message']}")
            return False

    def get_expense(self, user_id: str, expense_id: str) -> Optional[dict]:
        try:
            response = self.expenses_table.get_item(Key={"user_id": user_id, "expense_id": expense_id})
            item = response.get("Item")
            return _from_dynamo(item) if item else None
        except ClientError as e:
            logger.error(f"get_expense failed: {e.response['Error']['Message']}")
            return None

    def list_expenses(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        category: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> List[dict]:
        """Newest first. The category filter is a case-insensitive substring match."""
        items = self._filtered_expenses(user_id, category, payment_method)
        return items[offset:offset + limit]

    def count_expenses(
        self,
        user_id: str,
        category: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> int:
        return len(self._filtered_expenses(user_id, category, payment_method))

    def get_expenses_since(self, user_id: str, cutoff_iso: str, category: Optional[str] = None) -> List[dict]:
        """
        All expenses created at or after ``cutoff_iso``, newest first.
        ``category`` is an exact match.
        """
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("user_id").eq(user_id) & Key("expense_id").gte(cutoff_iso),
            "ScanIndexForward": False,
        }
        if category is not None:
            kwargs["FilterExpression"] = Attr("category").eq(category)
        return self._query_all(self.expenses_table, kwargs, "get_expenses_since")

    def update_expense(self, user_id: str, expense_id: str, updates: dict) -> Optional[dict]:
        """Apply partial updates to an expense. Returns the updated item or None."""
        return self._update(
            self.expenses_table,
            {"user_id": user_id, "expense_id": expense_id},
            updates,
            "update_expense",
        )

    def delete_expense(self, user_id: str, expense_id: str) -> bool:
        try:
            response = self.expenses_table.delete_item(
                Key={"user_id": user_id, "expense_id": expense_id},
                ReturnValues="ALL_OLD",
            )
            return "Attributes" in response
        except ClientError as e:
            logger.error(f"delete_expense failed: {e.response['Error']['Message']}")
            return False

    # Messages

    def put_message(self, message_item: dict) -> bool:
        try:
            self.messages_table.put_item(Item=_convert_for_dynamo(message_item))
            return True
        except ClientError as e:
            logger.error(f"put_message failed: {e.response['Error']['Message']}")
            return False

    def list_messages(self, user_id: str, limit: int = 50, offset: int = 0) -> List[dict]:
        """Newest first, like the expenses listing."""
        items = self._query_all(
            self.messages_table,
            {"KeyConditionExpression": Key("user_id").eq(user_id), "ScanIndexForward": False},
            "list_messages",
        )
        return items[offset:offset + limit]

    def count_messages(self, user_id: str) -> int:
        return len(
            self._query_all(
                self.messages_table,
                {"KeyConditionExpression": Key("user_id").eq(user_id)},
                "count_messages",
            )
        )

    # Conversation state

    def get_conversation_state(self, user_id: str, state_type: str = PENDING_EXPENSE) -> Optional[dict]:
        try:
            response = self.state_table.get_item(Key={"user_id": user_id, "type": state_type})
            item = response.get("Item")
            return _from_dynamo(item) if item else None
        except ClientError as e:
            logger.error(f"get_conversation_state failed: {e.response['Error']['Message']}")
            return None

    def put_conversation_state(self, user_id: str, payload: dict, state_type: str = PENDING_EXPENSE) -> bool:
        try:
            self.state_table.put_item(
                Item=_convert_for_dynamo({"user_id": user_id, "type": state_type, "payload": payload})
            )
            return True
        except ClientError as e:
            logger.error(f"put_conversation_state failed: {e.response['Error']['Message']}")
            return False

    def delete_conversation_state(self, user_id: str, state_type: str = PENDING_EXPENSE) -> bool:
        try:
            self.state_table.delete_item(Key={"user_id": user_id, "type": state_type})
            return True
        except ClientError as e:
            logger.error(f"delete_conversation_state failed: {e.response['Error']['Message']}")
            return False

    def clear_conversation_state(self, user_id: str) -> bool:
        """Remove every conversation state record of the user."""
        items = self._query_all(
            self.state_table,
            {"KeyConditionExpression": Key("user_id").eq(user_id)},
            "clear_conversation_state",
        )
        return all(self.delete_conversation_state(user_id, item["type"]) for item in items)

    # Helpers

    def _filtered_expenses(
        self,
        user_id: str,
        category: Optional[str],
        payment_method: Optional[str],
    ) -> List[dict]:
        items = self._query_all(
            self.expenses_table,
            {"KeyConditionExpression": Key("user_id").eq(user_id), "ScanIndexForward": False},
            "list_expenses",
        )
        if category:
            needle = category.lower()
            items = [item for item in items if needle in (item.get("category") or "").lower()]
        if payment_method:
            items = [item for item in items if item.get("payment_method") == payment_method]
        return items

    def _query_all(self, table, kwargs: Dict[str, Any], operation: str) -> List[dict]:
        items: List[dict] = []
        try:
            while True:
                response = table.query(**kwargs)
                items.extend(_from_dynamo(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs = dict(kwargs, ExclusiveStartKey=last_key)
        except ClientError as e:
            logger.error(f"{operation} failed: {e.response['Error']['Message']}")
            return []
        return items

    def _update(self, table, key: dict, updates: dict, operation: str) -> Optional[dict]:
        if not updates:
            return None

        update_expression_parts = []
        expression_attribute_values = {}
        expression_attribute_names = {}

        for idx, (field, value) in enumerate(updates.items()):
            placeholder = f"#f{idx}"
            value_placeholder = f":v{idx}"
            update_expression_parts.append(f"{placeholder} = {value_placeholder}")
            expression_attribute_names[placeholder] = field
            expression_attribute_values[value_placeholder] = value

        try:
            response = table.update_item(
                Key=key,
                UpdateExpression="SET " + ", ".join(update_expression_parts),
                ConditionExpression=" AND ".join(f"attribute_exists({k})" for k in key),
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
                ReturnValues="ALL_NEW",
            )
            attributes = response.get("Attributes")
            return _from_dynamo(attributes) if attributes else None
        except ClientError as e:
            logger.error(f"{operation} failed: {e.response['Error']['Message']}")
            return None


@lru_cache()
def get_store() -> ExpenseStore:
    """FastAPI dependency; tests replace it through ``app.dependency_overrides``."""
    return ExpenseStore()


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
