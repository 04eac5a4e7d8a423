from typing import Any, Optional

from pydantic import BaseModel, Field

from app.models.expense import new_sort_key, utc_now_iso

MAX_MESSAGE_LENGTH = 1000


class MessageCreate(BaseModel):
    content: str


class MessageInDB(BaseModel):
    user_id: str
    created_at: str = Field(default_factory=utc_now_iso)
    message_id: str = ""
    content: str
    sender: str  # "user" or "ai"
    source: str = "web"
    expense_id: Optional[str] = None

    def model_post_init(self, __context) -> None:
        if not self.message_id:
            self.message_id = new_sort_key(self.created_at)


class ChatResult(BaseModel):
    success: bool
    message: str
    message_id: Optional[str] = None
    expense_id: Optional[str] = None
    query_data: Optional[Any] = None
    requires_payment_method: bool = False
