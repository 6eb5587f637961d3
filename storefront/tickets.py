# storefront/tickets.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .db import AsyncSessionLocal, get_db
from .deps import get_current_user, require_admin
from .logger import logger
from .models import Ticket, User
from .schemas import (
    TicketCreateIn,
    TicketEnvelope,
    TicketListEnvelope,
    TicketOut,
    TicketReplyIn,
    TicketStatusIn,
)
from .ticket_rules import (
    TICKET_STATUSES,
    accepts_replies,
    can_transition,
    is_valid_status,
    validate_message,
    validate_subject,
)
from . import crud

router = APIRouter(prefix="/tickets", tags=["tickets"])


def owns(user: User, ticket: Ticket) -> bool:
    return (ticket.customer_email or "").lower() == (user.email or "").lower()

def ticket_out(ticket: Ticket) -> TicketOut:
    out = TicketOut.model_validate(ticket)
    out.messages = sorted(out.messages, key=lambda m: m.created_at)
    return out

async def load_visible_ticket(db: AsyncSession, ticket_id: str, user: User) -> Ticket:
    ticket = await crud.get_ticket_by_id(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if user.role != "admin" and not owns(user, ticket):
        raise HTTPException(status_code=403, detail="Unauthorized: You can only access your own tickets")
    return ticket

async def record_activity(actor: dict, action: str, ticket_id: str, details: dict):
    # Runs after the response; a failed audit write must not fail the request.
    async with AsyncSessionLocal() as db:
        try:
            await crud.log_activity(db, actor, action, "ticket", ticket_id, details)
        except Exception as e:
            await db.rollback()
            logger.warning(f"[TICKETS] activity log write failed for {ticket_id}: {e}")

def actor_of(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name}


@router.get("", response_model=TicketListEnvelope)
async def list_tickets(user: User = Depends(get_current_user),
                       db: AsyncSession = Depends(get_db)):
    if user.role == "admin":
        rows = await crud.get_all_tickets(db)
    else:
        rows = await crud.get_tickets_for_email(db, user.email)
    return {"tickets": [ticket_out(t) for t in rows]}

@router.get("/{ticket_id}", response_model=TicketEnvelope)
async def get_ticket(ticket_id: str,
                     user: User = Depends(get_current_user),
                     db: AsyncSession = Depends(get_db)):
    ticket = await load_visible_ticket(db, ticket_id, user)
    return {"ticket": ticket_out(ticket)}

@router.post("", response_model=TicketEnvelope, status_code=201)
async def create_ticket(payload: TicketCreateIn,
                        background: BackgroundTasks,
                        user: User = Depends(get_current_user),
                        db: AsyncSession = Depends(get_db)):
    error = validate_subject(payload.subject) or validate_message(payload.body, "Body")
    if error:
        raise HTTPException(status_code=400, detail=error)
    ticket = await crud.create_ticket(db, user, payload.subject, payload.body)
    background.add_task(record_activity, actor_of(user), "create", ticket.id, {
        "ticketSubject": ticket.subject,
        "customerEmail": ticket.customer_email,
    })
    return {"ticket": ticket_out(ticket)}

@router.post("/{ticket_id}/replies", response_model=TicketEnvelope)
async def reply_to_ticket(ticket_id: str,
                          payload: TicketReplyIn,
                          background: BackgroundTasks,
                          user: User = Depends(get_current_user),
                          db: AsyncSession = Depends(get_db)):
    ticket = await load_visible_ticket(db, ticket_id, user)
    error = validate_message(payload.message)
    if error:
        raise HTTPException(status_code=400, detail=error)
    if not accepts_replies(ticket.status):
        raise HTTPException(status_code=409, detail=f"Ticket is {ticket.status}; replies are closed")
    ticket = await crud.add_ticket_reply(db, ticket, user, payload.message)
    background.add_task(record_activity, actor_of(user), "update", ticket.id, {
        "action": "reply_added",
        "senderRole": user.role,
        "customerEmail": ticket.customer_email,
    })
    return {"ticket": ticket_out(ticket)}

@router.patch("/{ticket_id}/status", response_model=TicketEnvelope)
async def update_ticket_status(ticket_id: str,
                               payload: TicketStatusIn,
                               background: BackgroundTasks,
                               user: User = Depends(require_admin),
                               db: AsyncSession = Depends(get_db)):
    if not is_valid_status(payload.status):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {', '.join(TICKET_STATUSES)}",
        )
    ticket = await load_visible_ticket(db, ticket_id, user)
    previous = ticket.status
    if not can_transition(previous, payload.status):
        raise HTTPException(status_code=409, detail=f"Cannot move ticket from {previous} to {payload.status}")
    ticket, previous = await crud.update_ticket_status(db, ticket, payload.status)
    logger.info(f"[TICKETS] {ticket.id} {previous} -> {ticket.status}")
    background.add_task(record_activity, actor_of(user), "status_change", ticket.id, {
        "previousStatus": previous,
        "newStatus": ticket.status,
        "customerEmail": ticket.customer_email,
    })
    return {"ticket": ticket_out(ticket)}
