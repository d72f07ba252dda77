from datetime import datetime

from pydantic import BaseModel, ConfigDict
from typing import Optional

from marketplace.schemas.common import Name


class BankAccountCreate(BaseModel):
    bank: Name
    account_holder_name: Name
    account_number: Name


class BankAccountUpdate(BaseModel):
    bank: Optional[Name] = None
    account_holder_name: Optional[Name] = None
    account_number: Optional[Name] = None

    model_config = {"extra": "forbid"}


class BankAccountRead(BankAccountCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")
