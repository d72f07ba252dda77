from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from marketplace.schemas.common import Name, Password, Role


class SignupRequest(BaseModel):
    first_name: Name
    last_name:  Name
    email:      EmailStr
    password:   Password
    role:       Literal["client", "seller"] = "client"


class SignupResponse(BaseModel):
    detail: str
    user_id: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: Role


class TokenData(BaseModel):
    user_id: str
    role: Role
    email: EmailStr


class ChangePassword(BaseModel):
    old_password: str = Field(min_length=1)
    new_password: Password


class ForgotPassword(BaseModel):
    email: EmailStr


class VerifyOtp(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=4, max_length=10, pattern=r"^\d+$")
    new_password: Password
