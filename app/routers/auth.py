import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import create_access_token, get_current_user_id, get_password_hash, verify_password
from app.db.dynamo import ExpenseStore, get_store
from app.models.user import UserCreate, UserInDB, UserLogin, UserPublic

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, store: ExpenseStore = Depends(get_store)):
    email = user.email.lower()
    if store.get_user_by_email(email):
        raise HTTPException(status_code=400, detail="User already exists")

    user_db = UserInDB(email=email, password_hash=get_password_hash(user.password))
    if not store.put_user(user_db.model_dump()):
        raise HTTPException(status_code=500, detail="Error saving user")

    logger.info(f"Registered user {user_db.user_id}")
    return UserPublic.from_record(user_db.model_dump())


@router.post("/login")
def login(login_data: UserLogin, store: ExpenseStore = Depends(get_store)):
    user = store.get_user_by_email(login_data.email.lower())
    if not user or not user.get("password_hash"):
        logger.warning(f"User not found: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Invalid password for user: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": user["user_id"]})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserPublic.from_record(user).model_dump(),
    }


@router.get("/me", response_model=UserPublic)
def get_current_user(user_id: str = Depends(get_current_user_id), store: ExpenseStore = Depends(get_store)):
    user = store.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic.from_record(user)


@router.post("/logout")
def logout():
    # Tokens are stateless; the client drops its copy.
    return {"success": True, "message": "Logged out successfully"}
