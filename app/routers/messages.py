import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.security import get_current_user_id
from app.db.dynamo import ExpenseStore, get_store
from app.models.message import MAX_MESSAGE_LENGTH, MessageCreate
from app.utils.ai_client import AIClient, get_ai_client
from app.utils.message_handler import MessageHandler

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/")
async def send_message(
    body: MessageCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    ai_client: AIClient = Depends(get_ai_client),
):
    content = body.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message content is required")
    if len(body.content) > MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Message content is too long (max {MAX_MESSAGE_LENGTH} characters)",
        )

    result = await MessageHandler(store, ai_client).handle_incoming_message(user_id, content, source="web")
    return {
        "success": result.success,
        "message": result.message,
        "data": {
            "messageId": result.message_id,
            "expenseId": result.expense_id,
            "queryData": result.query_data,
            "requiresPaymentMethod": result.requires_payment_method,
        },
    }


@router.get("/")
def list_messages(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    messages = store.list_messages(user_id, limit, offset)
    total = store.count_messages(user_id)

    return {
        "success": True,
        "data": {
            # newest page, shown oldest first
            "messages": list(reversed(messages)),
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
        },
    }


@router.get("/state")
def get_conversation_state(user_id: str = Depends(get_current_user_id), store: ExpenseStore = Depends(get_store)):
    state = store.get_conversation_state(user_id)
    return {
        "success": True,
        "data": {
            "hasPendingExpense": state is not None,
            "pendingExpense": state["payload"] if state else None,
        },
    }


@router.delete("/state")
def clear_conversation_state(user_id: str = Depends(get_current_user_id), store: ExpenseStore = Depends(get_store)):
    success = store.clear_conversation_state(user_id)
    return {
        "success": success,
        "message": "Conversation state cleared" if success else "Failed to clear conversation state",
    }
