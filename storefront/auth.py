# storefront/auth.py
from fastapi import APIRouter, Depends, HTTPException
from datetime import datetime, timedelta, timezone
from jose import jwt

from sqlalchemy.ext.asyncio import AsyncSession
from .config import clean_env
from .db import get_db
from .logger import logger
from .models import User
from .schemas import AuthOut, LoginIn, RegisterIn, UserOut
from . import crud

SECRET_KEY = clean_env("JWT_SECRET_KEY", "change_me_long_secret")
ALGORITHM = "HS256"
# seven days
ACCESS_TOKEN_EXPIRE_MINUTES = int(clean_env("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))

router = APIRouter(prefix="", tags=["auth"])

def create_access_token(user: User, expires_delta: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    to_encode = {
        "sub": user.id,
        "id": user.id,
        "email": user.email,
        "role": user.role,
    }
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def auth_payload(user: User) -> dict:
    return {"access_token": create_access_token(user), "user": UserOut.model_validate(user)}

@router.post("/register", response_model=AuthOut)
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_db)):
    if not payload.name.strip() or not payload.password:
        raise HTTPException(status_code=400, detail="Email, password, and name are required")
    existing = await crud.get_user_by_email(db, payload.email)
    if existing:
        raise HTTPException(status_code=409, detail="User already exists")
    user = await crud.create_user(db, payload.name.strip(), payload.email, payload.password)
    logger.info(f"[AUTH] registered {user.id}")
    return auth_payload(user)

@router.post("/login", response_model=AuthOut)
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)):
    if not payload.email.strip() or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    user = await crud.verify_user(db, payload.email, payload.password)
    if not user:
        logger.info("[AUTH] login rejected")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info(f"[AUTH] login {user.id}")
    return auth_payload(user)
