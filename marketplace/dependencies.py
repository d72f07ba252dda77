from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from marketplace.database import get_db
from marketplace.exceptions import Forbidden, Unauthorized
from marketplace.schemas.auth import TokenData
from marketplace.schemas.common import Role
from marketplace.utils.mail import mailer
from marketplace.utils.storage import storage
from marketplace.utils.tokens import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_database():
    yield get_db()


def get_storage():
    return storage


def get_mailer():
    return mailer


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)]
) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(
            user_id=payload["user_id"],
            role=payload["role"],
            email=payload["email"],
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except (jwt.PyJWTError, KeyError, ValidationError):
        raise Unauthorized()


def require_role(*roles: Role):
    allowed = set(roles)

    async def dependency(
        current_user: TokenData = Depends(get_current_user),
    ) -> TokenData:
        if current_user.role not in allowed:
            raise Forbidden("Insufficient role")
        return current_user

    return dependency


def ensure_owner(current_user: TokenData, owner_id: str, detail: str = "Forbidden"):
    if current_user.user_id != owner_id:
        raise Forbidden(detail)


CurrentUser = Annotated[TokenData, Depends(get_current_user)]
AdminUser = Annotated[TokenData, Depends(require_role(Role.admin))]
ClientUser = Annotated[TokenData, Depends(require_role(Role.client))]
SellerUser = Annotated[TokenData, Depends(require_role(Role.seller))]
