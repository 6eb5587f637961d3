# storefront/users.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .deps import get_user_from_token
from .schemas import UserOut
from . import crud

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str,
                   token_user_id: str = Depends(get_user_from_token),
                   db: AsyncSession = Depends(get_db)):
    # callers may only read their own record
    if token_user_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized")
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
