# storefront/notifications.py
from typing import Optional, Sequence

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .deps import get_current_user
from .logger import logger
from .models import Order, Ticket, User
from .schemas import NotificationCountOut, NotificationsReadOut
from . import crud

router = APIRouter(prefix="/notifications", tags=["notifications"])

# orders still moving through checkout are not news to their owner
QUIET_ORDER_STATUSES = ("pending", "processing")


def _after(stamp: Optional[str], read_at: Optional[str]) -> bool:
    # timestamps are fixed-width UTC strings, so string order is time order
    if read_at is None:
        return True
    return bool(stamp) and stamp > read_at

def _own_order_changed(order: Order, user: User, read_at: Optional[str]) -> bool:
    return (
        order.user_id == user.id
        and order.status not in QUIET_ORDER_STATUSES
        and _after(order.updated_at or order.created_at, read_at)
    )

def _customer_ticket_news(ticket: Ticket, read_at: Optional[str]) -> bool:
    if not _after(ticket.updated_at or ticket.created_at, read_at):
        return False
    admin_reply = any(
        m.get("senderRole") == "admin" and _after(m.get("createdAt"), read_at)
        for m in (ticket.messages or [])
    )
    return admin_reply or ticket.status != "open"

def calculate_notification_counts(user: User, orders: Sequence[Order], tickets: Sequence[Ticket]) -> dict:
    """Count what happened since ``user.notifications_read_at``.

    Admins hear about paid orders placed by others, their own orders changing
    state, and tickets opened by anyone else. Customers hear about their own
    orders changing state and tickets that got an admin reply or left ``open``.
    A user who never marked anything read sees everything relevant.
    """
    read_at = user.notifications_read_at
    own_orders = [o for o in orders if _own_order_changed(o, user, read_at)]

    if user.role == "admin":
        new_orders = [
            o for o in orders
            if o.payment_status == "paid"
            and o.user_id != user.id
            and _after(o.created_at or o.updated_at, read_at)
        ]
        order_count = len(new_orders) + len(own_orders)
        ticket_count = len([
            t for t in tickets
            if t.user_id != user.id and _after(t.created_at or t.updated_at, read_at)
        ])
    else:
        order_count = len(own_orders)
        ticket_count = len([t for t in tickets if _customer_ticket_news(t, read_at)])

    return {
        "count": order_count + ticket_count,
        "order_count": order_count,
        "ticket_count": ticket_count,
        "notifications_read_at": read_at,
    }


@router.get("/count", response_model=NotificationCountOut)
async def notification_count(user: User = Depends(get_current_user),
                             db: AsyncSession = Depends(get_db)):
    orders = await crud.get_all_orders(db)
    if user.role == "admin":
        tickets = await crud.get_all_tickets(db)
    else:
        tickets = await crud.get_tickets_for_email(db, user.email)
    return calculate_notification_counts(user, orders, tickets)

@router.post("/read", response_model=NotificationsReadOut)
@router.post("/mark-read", response_model=NotificationsReadOut, include_in_schema=False)
async def mark_notifications_read(user: User = Depends(get_current_user),
                                  db: AsyncSession = Depends(get_db)):
    stamp = await crud.mark_notifications_read(db, user)
    logger.info(f"[CRUD] notifications read for {user.id} at {stamp}")
    return {"notifications_read_at": stamp}
