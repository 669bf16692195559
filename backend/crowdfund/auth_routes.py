import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from . import user_models, user_schemas
from .auth import create_access_token, get_current_user, hash_password, verify_password
from .config import Settings
from .database import get_db
from .dependencies import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", response_model=user_schemas.AuthToken, status_code=201)
def register(
    payload: user_schemas.UserRegister,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a donor or campaign owner account"""
    email = payload.email.lower()
    existing = db.query(user_models.User).filter(user_models.User.email == email).first()
    if existing:
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user = user_models.User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id} as {user.role}")
    return {"token": create_access_token(user.id, settings), "user": user}


@router.post("/login", response_model=user_schemas.AuthToken)
def login(
    payload: user_schemas.UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = db.query(user_models.User).filter(user_models.User.email == payload.email.lower()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return {"token": create_access_token(user.id, settings), "user": user}


@router.get("/me", response_model=user_schemas.User)
def me(user: user_models.User = Depends(get_current_user)):
    return user
