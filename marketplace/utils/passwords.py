import asyncio

import bcrypt

from marketplace.config import Settings


async def hash_secret(secret: str) -> str:
    hashed = await asyncio.to_thread(
        bcrypt.hashpw,
        secret.encode(),
        bcrypt.gensalt(rounds=Settings.BCRYPT_ROUNDS),
    )
    return hashed.decode()


async def check_secret(secret: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return await asyncio.to_thread(bcrypt.checkpw, secret.encode(), hashed.encode())
