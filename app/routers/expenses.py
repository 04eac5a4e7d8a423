import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import get_current_user_id
from app.db.dynamo import ExpenseStore, get_store
from app.models.expense import ExpenseInDB, ExpensePublic, ExpenseUpdate, PaymentCreate
from app.models.message import MessageInDB

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/payment")
def create_payment_expense(
    payment: PaymentCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    """
    Record a UPI payment made from the payment form. The description doubles as
    the category, and a matching chat message is stored alongside it.
    """
    if payment.amount is None or not math.isfinite(payment.amount) or payment.amount <= 0:
        raise HTTPException(status_code=400, detail="Valid amount is required")
    description = (payment.description or "").strip()
    if not description:
        raise HTTPException(status_code=400, detail="Description is required")

    expense = ExpenseInDB(
        user_id=user_id,
        amount=payment.amount,
        category=description,
        payment_method="upi",
        description=description,
    )
    if not store.put_expense(expense.model_dump()):
        raise HTTPException(status_code=500, detail="Failed to save expense")

    message = MessageInDB(
        user_id=user_id,
        content=f"Payment of {payment.amount:g} made via UPI for {description}",
        sender="user",
        source="web",
        expense_id=expense.expense_id,
    )
    if not store.put_message(message.model_dump()):
        logger.error(f"Expense {expense.expense_id} saved but its message was not")

    return {
        "success": True,
        "message": "Expense created successfully",
        "data": {
            "expense": ExpensePublic(**expense.model_dump()).model_dump(),
            "message": {
                "id": message.message_id,
                "content": message.content,
                "sender": message.sender,
                "created_at": message.created_at,
            },
        },
    }


@router.get("/")
def list_expenses(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    category: Optional[str] = None,
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    expenses = store.list_expenses(user_id, limit, offset, category, payment_method)
    total = store.count_expenses(user_id, category, payment_method)

    return {
        "success": True,
        "data": {
            "expenses": [ExpensePublic(**item).model_dump() for item in expenses],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
        },
    }


@router.get("/{expense_id}")
def get_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    expense = store.get_expense(user_id, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return {"success": True, "data": {"expense": ExpensePublic(**expense).model_dump()}}


@router.put("/{expense_id}")
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    mutable_fields = expense_update.model_dump(exclude_unset=True)
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "amount" in mutable_fields and (mutable_fields["amount"] is None or mutable_fields["amount"] < 0):
        raise HTTPException(status_code=400, detail="Valid amount is required")

    if not store.get_expense(user_id, expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")

    updated = store.update_expense(user_id, expense_id, mutable_fields)
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to update expense")

    return {
        "success": True,
        "message": "Expense updated successfully",
        "data": {"expense": ExpensePublic(**updated).model_dump()},
    }


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    if not store.delete_expense(user_id, expense_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return {"success": True, "message": "Expense deleted successfully"}
