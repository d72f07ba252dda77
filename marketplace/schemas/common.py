from decimal import Decimal
from enum import Enum
from typing import Annotated

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, BeforeValidator, Field

from marketplace.utils.mongo import from_decimal128


def _check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid ObjectId")
    return value


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]
Name        = Annotated[str, Field(min_length=1, max_length=255)]
Password    = Annotated[str, Field(min_length=8, max_length=128)]
Money       = Annotated[Decimal, BeforeValidator(from_decimal128), Field(ge=0, max_digits=12, decimal_places=2)]
# computed sums, no precision limit
Amount      = Annotated[Decimal, BeforeValidator(from_decimal128)]


class Role(str, Enum):
    client = "client"
    seller = "seller"
    admin = "admin"


class Message(BaseModel):
    detail: str
