"""
Message Handler
Turns chat messages into expenses or query answers with the help of the AI service.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.db.dynamo import ExpenseStore
from app.models.expense import ExpenseInDB, utc_now_iso
from app.models.message import ChatResult, MessageInDB
from app.utils.ai_client import AIClient, AIResult

logger = logging.getLogger(__name__)

PAYMENT_METHOD_KEYWORDS = (
    ("upi", ("upi", "gpay", "phonepe", "paytm", "bharatpe")),
    ("cash", ("cash", "money", "notes", "coins")),
    ("card", ("card", "credit", "debit", "visa", "mastercard")),
    ("netbanking", ("netbanking", "net banking", "bank transfer")),
    ("wallet", ("wallet", "digital wallet")),
)

FALLBACK_REPLY = "I'm not sure how to process that. Please try asking about expenses or queries."
INVALID_REPLY = "I'm sorry, I received an invalid response from the AI service. Please try again."
ERROR_REPLY = "I encountered an error processing your message. Please try again."
CLARIFY_REPLY = "I couldn't identify the payment method. Please specify: cash, UPI, card, or other method."


def extract_payment_method(content: str) -> Optional[str]:
    lowered = content.lower()
    for method, keywords in PAYMENT_METHOD_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return method
    return None


def normalize_source(source: str) -> str:
    return "web" if source.lower() == "web" else "telegram"


def _expense_date(value) -> str:
    if not value:
        return utc_now_iso()
    # ValueError for unparseable dates
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).isoformat()


class MessageHandler:
    def __init__(self, store: ExpenseStore, ai_client: AIClient) -> None:
        self.store = store
        self.ai_client = ai_client

    def _save_message(self, user_id: str, content: str, sender: str, source: str, **extra) -> MessageInDB:
        message = MessageInDB(user_id=user_id, content=content, sender=sender, source=source, **extra)
        if not self.store.put_message(message.model_dump()):
            raise RuntimeError("Failed to save message")
        return message

    def _reply(self, user_id: str, content: str, source: str, success: bool = True, **extra) -> ChatResult:
        expense_id = extra.pop("expense_id", None)
        message = self._save_message(user_id, content, "ai", source, expense_id=expense_id)
        return ChatResult(
            success=success,
            message=message.content,
            message_id=message.message_id,
            expense_id=expense_id,
            **extra,
        )

    def _save_expense(self, user_id: str, expense_data: dict) -> ExpenseInDB:
        expense = ExpenseInDB(
            user_id=user_id,
            amount=float(expense_data["amount"]),
            category=expense_data.get("category"),
            subcategory=expense_data.get("subcategory"),
            companions=expense_data.get("companions") or [],
            date=_expense_date(expense_data.get("date")),
            payment_method=expense_data.get("paymentMethod") or expense_data.get("payment_method"),
            description=expense_data.get("description"),
        )
        if not self.store.put_expense(expense.model_dump()):
            raise RuntimeError("Failed to save expense")
        return expense

    async def handle_incoming_message(self, user_id: str, content: str, source: str = "web") -> ChatResult:
        """
        Entry point for a chat message. Store calls run in the threadpool; only
        the AI call is awaited on the event loop.
        """
        source = normalize_source(source)
        try:
            logger.info(f"Processing message from {source}: {content[:50]}")
            await run_in_threadpool(self._save_message, user_id, content, "user", source)

            if await run_in_threadpool(self.store.get_conversation_state, user_id):
                logger.info(f"Pending expense found for user {user_id}, reading payment method")
                return await run_in_threadpool(self.handle_payment_method_reply, user_id, content, source)

            ai_response = await self.ai_client.process_message(content, user_id)
            return await run_in_threadpool(self.handle_ai_response, user_id, ai_response, source)
        except Exception as e:
            logger.error(f"Error handling message for user {user_id}: {str(e)}", exc_info=True)
            message = MessageInDB(user_id=user_id, content=ERROR_REPLY, sender="ai", source=source)
            saved = await run_in_threadpool(self.store.put_message, message.model_dump())
            return ChatResult(
                success=False,
                message=ERROR_REPLY,
                message_id=message.message_id if saved else None,
            )

    def handle_ai_response(self, user_id: str, ai_response: AIResult, source: str) -> ChatResult:
        if not ai_response.success:
            logger.error(f"AI service returned error: {ai_response.error} - {ai_response.message}")
            return self._reply(
                user_id,
                f"Sorry, I'm having trouble processing your request. {ai_response.message}",
                source,
                success=False,
            )

        ai_data = ai_response.data
        if not self.ai_client.validate_response(ai_data):
            logger.error(f"Invalid AI response format: {ai_data}")
            return self._reply(user_id, INVALID_REPLY, source, success=False)

        if ai_data["type"] == "expense":
            return self.handle_expense_response(user_id, ai_data, source)
        if ai_data["type"] == "query":
            return self._reply(
                user_id,
                self.ai_client.extract_reply(ai_data) or FALLBACK_REPLY,
                source,
                query_data=ai_data.get("data"),
            )

        logger.warning(f"Unknown AI response type: {ai_data.get('type')}")
        return self._reply(user_id, self.ai_client.extract_reply(ai_data) or FALLBACK_REPLY, source)

    def handle_expense_response(self, user_id: str, ai_data: dict, source: str) -> ChatResult:
        expense_data = ai_data["data"]
        try:
            expense_data = dict(expense_data, date=_expense_date(expense_data.get("date")))
        except ValueError:
            logger.error(f"Unparseable expense date from AI service: {expense_data.get('date')}")
            return self._reply(user_id, INVALID_REPLY, source, success=False)

        reply = self.ai_client.extract_reply(ai_data) or FALLBACK_REPLY
        if not expense_data.get("paymentMethod"):
            logger.info(f"Storing pending expense for user {user_id} (missing payment method)")
            if not self.store.put_conversation_state(user_id, dict(expense_data, user_id=user_id)):
                raise RuntimeError("Failed to store pending expense")
            return self._reply(user_id, reply, source, requires_payment_method=True)

        expense = self._save_expense(user_id, expense_data)
        logger.info(f"Expense {expense.expense_id} saved for user {user_id}")
        return self._reply(user_id, reply, source, expense_id=expense.expense_id)

    def handle_payment_method_reply(self, user_id: str, content: str, source: str) -> ChatResult:
        pending = self.store.get_conversation_state(user_id)
        if not pending:
            raise RuntimeError("No pending expense to complete")

        payment_method = extract_payment_method(content)
        if not payment_method:
            return self._reply(user_id, CLARIFY_REPLY, source, requires_payment_method=True)

        expense_data = dict(pending["payload"], paymentMethod=payment_method)
        try:
            expense = self._save_expense(user_id, expense_data)
        except ValueError:
            logger.error(f"Dropping unusable pending expense for user {user_id}: {pending['payload']}", exc_info=True)
            self.store.delete_conversation_state(user_id)
            return self._reply(user_id, INVALID_REPLY, source, success=False)
        self.store.delete_conversation_state(user_id)

        label = expense_data.get("description") or expense_data.get("category")
        return self._reply(
            user_id,
            f"Expense logged! {label} - {settings.CURRENCY_SYMBOL}{expense_data['amount']} via {payment_method}",
            source,
            expense_id=expense.expense_id,
        )
