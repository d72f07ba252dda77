from datetime import datetime, timedelta, timezone
import jwt

from marketplace.config import Settings


def create_access_token(user_id: str, role: str, email: str) -> str:
    return jwt.encode(
        {
            'user_id': user_id,
            'role': role,
            'email': email,
            'exp': datetime.now(timezone.utc) + timedelta(minutes=int(Settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
        },
        Settings.JWT_SECRET,
        algorithm=Settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> dict:
    return jwt.decode(token, Settings.JWT_SECRET, algorithms=[Settings.JWT_ALGORITHM])
