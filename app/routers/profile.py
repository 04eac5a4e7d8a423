from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db.dynamo import ExpenseStore, get_store
from app.models.user import ProfileUpdate, UserPublic

router = APIRouter()


@router.get("")
def get_profile(user_id: str = Depends(get_current_user_id), store: ExpenseStore = Depends(get_store)):
    user = store.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"success": True, "data": {"user": UserPublic.from_record(user).model_dump()}}


@router.put("")
def update_profile(
    profile: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    updates = {k: v for k, v in profile.model_dump(exclude_unset=True).items() if v}
    if "email" in updates:
        updates["email"] = updates["email"].lower()
        existing = store.get_user_by_email(updates["email"])
        if existing and existing["user_id"] != user_id:
            raise HTTPException(status_code=400, detail="Email already in use")
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    user = store.update_user(user_id, updates)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": UserPublic.from_record(user).model_dump()},
    }
