# storefront/orders.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .deps import get_current_user
from .models import User
from .schemas import OrderIn, OrderOut
from . import crud

router = APIRouter(prefix="/orders", tags=["orders"])

@router.get("", response_model=List[OrderOut])
async def my_orders(user: User = Depends(get_current_user),
                    db: AsyncSession = Depends(get_db)):
    return await crud.get_orders_for_user(db, user.id)

@router.post("", response_model=OrderOut, status_code=201)
async def create_order(payload: OrderIn,
                       user: User = Depends(get_current_user),
                       db: AsyncSession = Depends(get_db)):
    return await crud.create_order(db, user, payload.cart_list, payload.amount_paid, payload.quantity)
