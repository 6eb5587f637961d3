# storefront/models.py
from sqlalchemy import Column, Integer, String, Numeric, JSON, Boolean, Text
from .db import Base
import uuid

def gen_uuid():
    return str(uuid.uuid4())

class Product(Base):
    __tablename__ = "products"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False)
    overview = Column(Text)
    long_description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    poster = Column(String)
    image_local = Column(String)
    rating = Column(Integer)
    best_seller = Column(Boolean, default=False)
    in_stock = Column(Boolean, default=True)
    # NULL means stock is not tracked for this product
    stock = Column(Integer, nullable=True)
    size = Column(Integer)

class FeaturedProduct(Base):
    __tablename__ = "featured_products"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False)
    overview = Column(Text)
    long_description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    poster = Column(String)
    image_local = Column(String)
    rating = Column(Integer)
    best_seller = Column(Boolean, default=False)
    in_stock = Column(Boolean, default=True)
    stock = Column(Integer, nullable=True)
    size = Column(Integer)

class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String)
    # always stored lower-cased
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="customer")
    notifications_read_at = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=True)

class Order(Base):
    __tablename__ = "orders"
    id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, index=True)
    user = Column(JSON)
    cart_list = Column(JSON)
    amount_paid = Column(Numeric(10, 2))
    quantity = Column(Integer)
    status = Column(String, default="pending")
    payment_status = Column(String, default="pending")
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=True)

class Ticket(Base):
    __tablename__ = "tickets"
    id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, index=True, nullable=False)
    customer_email = Column(String, index=True, nullable=False)
    customer_name = Column(String)
    subject = Column(String, nullable=False)
    status = Column(String, nullable=False, default="open")
    # append-only list of message dicts, oldest first
    messages = Column(JSON, nullable=False, default=list)
    # bumped on every write; conditional updates on it keep concurrent writers from losing messages
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

class ActivityLog(Base):
    __tablename__ = "activity_logs"
    id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, index=True, nullable=False)
    user_email = Column(String)
    user_name = Column(String)
    action = Column(String, nullable=False)
    entity_type = Column(String, index=True, nullable=False)
    entity_id = Column(String, nullable=False)
    details = Column(JSON)
    created_at = Column(String, nullable=False)
