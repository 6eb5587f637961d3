# storefront/schemas.py
# Wire shapes shared by the API handlers and the client SDK.
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

Role = Literal["customer", "admin"]
TicketStatus = Literal["open", "in_progress", "resolved", "closed"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )


# ---------- users / auth ----------

class UserOut(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    role: Optional[Role] = None
    notifications_read_at: Optional[str] = None
    created_at: Optional[str] = None


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterIn(BaseModel):
    name: str
    email: EmailStr
    password: str


class AuthOut(CamelModel):
    access_token: str
    user: UserOut


# ---------- products / orders ----------

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    name: str
    overview: Optional[str] = None
    long_description: Optional[str] = None
    price: float = 0.0
    poster: Optional[str] = None
    image_local: Optional[str] = None
    rating: Optional[int] = None
    best_seller: bool = False
    in_stock: bool = True
    stock: Optional[int] = None
    size: Optional[int] = None


class OrderIn(BaseModel):
    cart_list: List[dict] = Field(validation_alias=AliasChoices("cartList", "cart_list"), min_length=1)
    amount_paid: float = Field(ge=0)
    quantity: int = Field(ge=1)


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, extra="ignore")

    id: str
    user_id: str = Field(alias="userId")
    user: Optional[dict] = None
    cart_list: List[dict] = Field(default_factory=list, alias="cartList")
    amount_paid: float = 0.0
    quantity: int = 0
    status: str = "pending"
    payment_status: str = Field(default="pending", alias="paymentStatus")
    created_at: str = Field(alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


# ---------- tickets ----------

class MessageOut(CamelModel):
    id: str
    sender_id: str
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    sender_role: Role
    message: str
    created_at: str


class TicketOut(CamelModel):
    id: str
    user_id: str
    customer_email: str
    customer_name: Optional[str] = None
    subject: str
    status: TicketStatus
    messages: List[MessageOut] = Field(default_factory=list)
    created_at: str
    updated_at: str


class TicketCreateIn(BaseModel):
    subject: Optional[str] = None
    body: Optional[str] = Field(default=None, validation_alias=AliasChoices("body", "message"))


class TicketReplyIn(BaseModel):
    message: Optional[str] = None


class TicketStatusIn(BaseModel):
    status: Optional[str] = None


class TicketEnvelope(BaseModel):
    ticket: TicketOut


class TicketListEnvelope(BaseModel):
    tickets: List[TicketOut]


# ---------- notifications / activity ----------

class NotificationCountOut(CamelModel):
    count: int = 0
    order_count: int = 0
    ticket_count: int = 0
    notifications_read_at: Optional[str] = None


class NotificationsReadOut(CamelModel):
    notifications_read_at: str


class ActivityLogOut(CamelModel):
    id: str
    user_id: str
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    action: str
    entity_type: str
    entity_id: str
    details: Optional[dict[str, Any]] = None
    created_at: str
