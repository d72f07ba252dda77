from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated

from marketplace.schemas.common import Amount, ObjectIdStr


class DiscountCreate(BaseModel):
    product_id: ObjectIdStr
    user_id: ObjectIdStr
    chat_id: ObjectIdStr
    negotiated_price: Annotated[float, Field(gt=0)]
    expiry: datetime


class DiscountRead(BaseModel):
    id: str
    product_id: str
    user_id: str
    chat_id: str
    negotiated_price: Amount
    expiry: datetime

    model_config = ConfigDict(extra="ignore")
