from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, Json, PositiveInt
from typing import Any, Dict, Optional, List, Annotated

from marketplace.schemas.common import Amount, Money, Name


class OrderStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    canceled = "canceled"


TERMINAL_STATUSES = {OrderStatus.completed, OrderStatus.canceled}


class OrderItem(BaseModel):
    product_id: str
    seller_id: str
    quantity: PositiveInt
    price: Money
    image: Optional[str] = None
    title: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


OrderItems = Annotated[List[OrderItem], Field(min_length=1)]


class OrderRead(BaseModel):
    id: str
    user_id: str
    items: List[OrderItem]
    total: Money
    payment_method: str
    account_holder_name: str
    account_number: str
    recipient_screenshot: Optional[str] = None
    transaction_id: str
    status: OrderStatus
    shipping_address: Optional[Dict[str, Any]] = None
    order_date: datetime
    delivery_date: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class SellerOrderRead(OrderRead):
    created_at: datetime


class StatusUpdate(BaseModel):
    status: OrderStatus


class SoldProduct(BaseModel):
    product_id: str
    name: str
    image: Optional[str] = None
    price: Amount
    quantity: int
    total_item_price: Amount
    order_id: str
    order_date: datetime


class SellerSummary(BaseModel):
    id: str
    name: str
    profile_picture: Optional[str] = None


class SellerRevenue(BaseModel):
    seller: SellerSummary
    products: List[SoldProduct]
    total_price: Amount
    total_after_fee: Amount


class OrdersPerMonth(BaseModel):
    date: str = Field(..., description="YYYY-MM")
    count: int
    total_price: Amount


class OrderTotal(BaseModel):
    total_orders: int


class StatusBreakdown(BaseModel):
    pending: int = 0
    completed: int = 0
    canceled: int = 0


class CompletedStats(BaseModel):
    completed_orders: int
    total_price: Amount


class OrderCreate(BaseModel):
    user_id: str
    items: Json[OrderItems]
    total: Money
    payment_method: Name
    account_holder_name: Name
    account_number: Name
    transaction_id: Name
    shipping_address: Optional[Json[Dict[str, Any]]] = None
    order_date: datetime
