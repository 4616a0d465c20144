from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.ai_feature.messages import Message


# =========================
# Enums
# =========================
class DatabaseStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


# =========================
# CHAT
# =========================
class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: List[Message] = []


class ChatResponse(BaseModel):
    response: str
    follow_up: Optional[str] = Field(default=None, serialization_alias="followUp")


class HealthResponse(BaseModel):
    status: str = "healthy"
    database: DatabaseStatus


# =========================
# RECORDS (what the entity tools hand to the model)
# =========================
class UserRecord(BaseModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductRecord(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    stock_quantity: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderItemRecord(BaseModel):
    id: int
    order_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    product: Optional[ProductRecord] = None

    model_config = ConfigDict(from_attributes=True)


class OrderRecord(BaseModel):
    id: int
    user_id: int
    total_amount: Decimal
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserRecord] = None
    order_items: List[OrderItemRecord] = []

    model_config = ConfigDict(from_attributes=True)


class ReviewRecord(BaseModel):
    id: int
    user_id: int
    product_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserRecord] = None
    product: Optional[ProductRecord] = None

    model_config = ConfigDict(from_attributes=True)
