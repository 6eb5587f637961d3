# storefront/crud.py
import functools
import re
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import StoreNotProvisioned, TicketConflict
from .logger import logger
from .models import ActivityLog, FeaturedProduct, Order, Product, Ticket, User
from .ticket_rules import accepts_replies, can_transition

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_MISSING_TABLE = re.compile(r'no such table: (\w+)|relation "(\w+)" does not exist')


def now_iso() -> str:
    # fixed-width UTC so string order matches time order
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def store_guard(fn):
    """Translate "table missing" driver errors into StoreNotProvisioned."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except (OperationalError, ProgrammingError) as e:
            m = _MISSING_TABLE.search(str(e.orig) if e.orig is not None else str(e))
            if not m:
                raise
            raise StoreNotProvisioned(m.group(1) or m.group(2), e) from e

    return wrapper


# ---------- users ----------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

@store_guard
async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(func.lower(User.email) == email.strip().lower())
    r = await db.execute(q)
    return r.scalar_one_or_none()

@store_guard
async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    q = select(User).where(User.id == user_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

@store_guard
async def create_user(db: AsyncSession, name: str, email: str, password: str, role: str = "customer") -> User:
    user_id = str(uuid.uuid4())
    stmt = insert(User).values(
        id=user_id,
        name=name,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        notifications_read_at=None,
        created_at=now_iso(),
    )
    await db.execute(stmt)
    await db.commit()
    logger.info(f"[CRUD] create_user {user_id} role={role}")
    return await get_user_by_id(db, user_id)

async def verify_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user

@store_guard
async def mark_notifications_read(db: AsyncSession, user: User) -> str:
    stamp = now_iso()
    # never move the marker backwards
    if user.notifications_read_at and user.notifications_read_at > stamp:
        stamp = user.notifications_read_at
    await db.execute(
        update(User).where(User.id == user.id).values(notifications_read_at=stamp, updated_at=now_iso())
    )
    await db.commit()
    user.notifications_read_at = stamp
    return stamp


# ---------- products ----------

@store_guard
async def list_products(db: AsyncSession, name_like: str = "") -> List[Product]:
    r = await db.execute(select(Product))
    products = list(r.scalars().all())
    if name_like:
        term = name_like.lower()
        products = [
            p for p in products
            if term in (p.name or "").lower() or term in (p.overview or "").lower()
        ]
    return products

@store_guard
async def get_product(db: AsyncSession, product_id: str) -> Optional[Product]:
    r = await db.execute(select(Product).where(Product.id == str(product_id)))
    return r.scalar_one_or_none()

@store_guard
async def list_featured_products(db: AsyncSession) -> List[FeaturedProduct]:
    r = await db.execute(select(FeaturedProduct))
    return list(r.scalars().all())

@store_guard
async def upsert_product(db: AsyncSession, product: Dict, featured: bool = False):
    model = FeaturedProduct if featured else Product
    product = {**product, "id": str(product["id"])}
    r = await db.execute(select(model).where(model.id == product["id"]))
    if r.scalar_one_or_none():
        values = {k: v for k, v in product.items() if k != "id"}
        await db.execute(update(model).where(model.id == product["id"]).values(**values))
    else:
        await db.execute(insert(model).values(**product))
    await db.commit()


# ---------- orders ----------

@store_guard
async def create_order(db: AsyncSession, user: User, cart_list: List[Dict], amount_paid: float, quantity: int) -> Order:
    order_id = str(uuid.uuid4())
    now = now_iso()
    stmt = insert(Order).values(
        id=order_id,
        user_id=user.id,
        user={"id": user.id, "name": user.name, "email": user.email},
        cart_list=cart_list,
        amount_paid=amount_paid,
        quantity=quantity,
        status="pending",
        payment_status="pending",
        created_at=now,
        updated_at=now,
    )
    await db.execute(stmt)
    await db.commit()
    logger.info(f"[CRUD] create_order {order_id} for user {user.id}")
    r = await db.execute(select(Order).where(Order.id == order_id))
    return r.scalar_one()

@store_guard
async def get_orders_for_user(db: AsyncSession, user_id: str) -> List[Order]:
    q = select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())
    r = await db.execute(q)
    return list(r.scalars().all())

@store_guard
async def get_all_orders(db: AsyncSession) -> List[Order]:
    r = await db.execute(select(Order))
    return list(r.scalars().all())


# ---------- tickets ----------

def _message(sender: User, text: str, stamp: str) -> Dict:
    return {
        "id": str(uuid.uuid4()),
        "senderId": sender.id,
        "senderEmail": sender.email,
        "senderName": sender.name or ("Admin" if sender.role == "admin" else "Customer"),
        "senderRole": sender.role,
        "message": text.strip(),
        "createdAt": stamp,
    }

@store_guard
async def create_ticket(db: AsyncSession, owner: User, subject: str, body: str) -> Ticket:
    ticket_id = str(uuid.uuid4())
    now = now_iso()
    stmt = insert(Ticket).values(
        id=ticket_id,
        user_id=owner.id,
        customer_email=owner.email.lower(),
        customer_name=owner.name or "Customer",
        subject=subject.strip(),
        status="open",
        messages=[_message(owner, body, now)],
        version=0,
        created_at=now,
        updated_at=now,
    )
    await db.execute(stmt)
    await db.commit()
    logger.info(f"[CRUD] create_ticket {ticket_id} by {owner.id}")
    return await get_ticket_by_id(db, ticket_id)

@store_guard
async def get_ticket_by_id(db: AsyncSession, ticket_id: str) -> Optional[Ticket]:
    r = await db.execute(select(Ticket).where(Ticket.id == ticket_id))
    return r.scalar_one_or_none()

@store_guard
async def get_all_tickets(db: AsyncSession) -> List[Ticket]:
    r = await db.execute(select(Ticket).order_by(Ticket.updated_at.desc()))
    return list(r.scalars().all())

@store_guard
async def get_tickets_for_email(db: AsyncSession, email: str) -> List[Ticket]:
    q = (
        select(Ticket)
        .where(func.lower(Ticket.customer_email) == email.strip().lower())
        .order_by(Ticket.updated_at.desc())
    )
    r = await db.execute(q)
    return list(r.scalars().all())

def _bump(ticket: Ticket) -> str:
    now = now_iso()
    return max(now, ticket.created_at)

MAX_WRITE_ATTEMPTS = 10

async def _reload_ticket(db: AsyncSession, ticket_id: str) -> Optional[Ticket]:
    q = select(Ticket).where(Ticket.id == ticket_id).execution_options(populate_existing=True)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def _write_ticket(db: AsyncSession, ticket: Ticket, changes: Callable[[Ticket], Dict]) -> Ticket:
    """Apply ``changes(ticket)`` only if nobody wrote the ticket since it was read.

    A lost race reloads the ticket and rebuilds the change from the fresh row,
    so rule checks inside ``changes`` always see the state being replaced.
    """
    for _ in range(MAX_WRITE_ATTEMPTS):
        values = changes(ticket)
        r = await db.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.version == ticket.version)
            .values(**values, version=ticket.version + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        fresh = await _reload_ticket(db, ticket.id)
        if r.rowcount == 1:
            return fresh
        logger.info(f"[CRUD] ticket {ticket.id} changed since it was read, retrying")
        ticket = fresh
    raise TicketConflict("Ticket is being updated by someone else, try again")

@store_guard
async def add_ticket_reply(db: AsyncSession, ticket: Ticket, sender: User, text: str) -> Ticket:
    def changes(current: Ticket) -> Dict:
        if not accepts_replies(current.status):
            raise TicketConflict(f"Ticket is {current.status}; replies are closed")
        stamp = _bump(current)
        status = current.status
        if sender.role == "admin" and status == "open":
            status = "in_progress"
        messages = list(current.messages or []) + [_message(sender, text, stamp)]
        return {"messages": messages, "status": status, "updated_at": stamp}

    return await _write_ticket(db, ticket, changes)

@store_guard
async def update_ticket_status(db: AsyncSession, ticket: Ticket, status: str) -> Tuple[Ticket, str]:
    """Returns the updated ticket and the status it actually moved from."""
    replaced = {}

    def changes(current: Ticket) -> Dict:
        replaced["status"] = current.status
        if not can_transition(current.status, status):
            raise TicketConflict(f"Cannot move ticket from {current.status} to {status}")
        return {"status": status, "updated_at": _bump(current)}

    ticket = await _write_ticket(db, ticket, changes)
    return ticket, replaced["status"]


# ---------- activity log ----------

@store_guard
async def log_activity(db: AsyncSession, actor: Dict, action: str, entity_type: str, entity_id: str, details: Optional[Dict] = None):
    entry_id = str(uuid.uuid4())
    await db.execute(insert(ActivityLog).values(
        id=entry_id,
        user_id=actor["id"],
        user_email=actor.get("email"),
        user_name=actor.get("name"),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
        created_at=now_iso(),
    ))
    await db.commit()
    return entry_id

@store_guard
async def get_activity_logs(db: AsyncSession, entity_type: Optional[str] = None, limit: int = 100) -> List[ActivityLog]:
    q = select(ActivityLog)
    if entity_type:
        q = q.where(ActivityLog.entity_type == entity_type)
    q = q.order_by(ActivityLog.created_at.desc()).limit(limit)
    r = await db.execute(q)
    return list(r.scalars().all())
