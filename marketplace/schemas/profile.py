from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

from marketplace.schemas.common import Name, Password, Role


class AccountRead(BaseModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    email: EmailStr
    role: Role
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class PublicProfile(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    profile_picture: Optional[str] = None


class AccountTotal(BaseModel):
    total: int


class RegistrationsPerMonth(BaseModel):
    date: str = Field(..., description="YYYY-MM")
    count: int


class AccountUpdate(BaseModel):
    first_name: Name
    last_name: Name
    email: EmailStr


class SellerCreate(AccountUpdate):
    password: Password


class ProfileUpdate(BaseModel):
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None
    email: Optional[EmailStr] = None
