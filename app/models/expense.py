from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_sort_key(created_at: str) -> str:
    """Range key that sorts chronologically: '<ISO timestamp>_<random hex>'."""
    return f"{created_at}_{uuid4().hex[:8]}"


class PaymentCreate(BaseModel):
    amount: Optional[float] = None
    description: Optional[str] = None


class ExpenseUpdate(BaseModel):
    amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    companions: Optional[List[str]] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None


class ExpenseInDB(BaseModel):
    user_id: str
    created_at: str = Field(default_factory=utc_now_iso)
    expense_id: str = ""
    amount: float = Field(ge=0, allow_inf_nan=False)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    companions: List[str] = Field(default_factory=list)
    date: str = Field(default_factory=utc_now_iso)
    payment_method: Optional[str] = None
    description: Optional[str] = None

    def model_post_init(self, __context) -> None:
        if not self.expense_id:
            self.expense_id = new_sort_key(self.created_at)


class ExpensePublic(BaseModel):
    expense_id: str
    amount: float
    category: Optional[str] = None
    subcategory: Optional[str] = None
    companions: List[str] = Field(default_factory=list)
    date: str
    payment_method: Optional[str] = None
    description: Optional[str] = None
    created_at: str
