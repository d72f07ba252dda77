from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt
from typing import Optional, List, Annotated

from marketplace.schemas.common import Money, ObjectIdStr


class ProductStatus(str, Enum):
    available = "available"
    sold = "sold"


class ProductRead(BaseModel):
    id: str
    title: str
    price: Money
    description: Optional[str] = None
    category_id: Optional[str] = None
    seller_id: Optional[str] = None
    image: Optional[str] = None
    quantity: NonNegativeInt = 0
    product_status: ProductStatus = ProductStatus.available
    average_rating: float = 0
    rating_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class ProductTotal(BaseModel):
    total_products: int


class QuantityItem(BaseModel):
    product_id: str
    quantity: int


class QuantityAdjustment(BaseModel):
    items: Annotated[List[QuantityItem], Field(min_length=1)]


class RatingCreate(BaseModel):
    product_id: str
    rating: Annotated[int, Field(ge=1, le=5)]


class RatingRead(BaseModel):
    rating: Optional[int] = None


class ProductCreate(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=255)]
    price: Money
    description: Annotated[str, Field(max_length=5000)] = ""
    category_id: ObjectIdStr
    quantity: NonNegativeInt


class ProductUpdate(BaseModel):
    title: Optional[Annotated[str, Field(min_length=1, max_length=255)]] = None
    price: Optional[Money] = None
    description: Optional[Annotated[str, Field(max_length=5000)]] = None
    category_id: Optional[ObjectIdStr] = None
    quantity: Optional[NonNegativeInt] = None
    product_status: Optional[ProductStatus] = None
