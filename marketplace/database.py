from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING

from marketplace.config import Settings

client: AsyncIOMotorClient | None = None


class Collections:
    USERS = "users"
    SELLERS = "sellers"
    ADMINS = "admin"
    PRODUCTS = "products"
    CATEGORIES = "categories"
    ORDERS = "orders"
    CHATS = "chats"
    DISCOUNTS = "discounts"
    REVIEWS = "reviews"
    OTPS = "otps"
    ADDRESSES = "clientAddress"
    BANK_ACCOUNTS = "adminAccount"


def get_client():
    global client
    if client is None:
        client = AsyncIOMotorClient(Settings.MONGO_URL)
    return client


def get_db():
    return get_client()[Settings.MONGO_DB]


def close_db():
    global client
    if client is not None:
        client.close()
        client = None


async def init_indexes():
    """Создание индексов при первом старте"""
    db = get_db()
    await db[Collections.CHATS].create_index(
        [("product_id", ASCENDING), ("client_id", ASCENDING), ("seller_id", ASCENDING)],
        unique=True,
    )
    await db[Collections.CHATS].create_index("seller_id")
    await db[Collections.ORDERS].create_index("user_id")
    await db[Collections.ORDERS].create_index("items.seller_id")
    await db[Collections.PRODUCTS].create_index("seller_id")
    await db[Collections.REVIEWS].create_index(
        [("product_id", ASCENDING), ("user_id", ASCENDING)], unique=True
    )
    await db[Collections.DISCOUNTS].create_index([("product_id", ASCENDING), ("user_id", ASCENDING)])
    await db[Collections.OTPS].create_index("email")
    for name in (Collections.USERS, Collections.SELLERS, Collections.ADMINS):
        await db[name].create_index("email", unique=True)


@asynccontextmanager
async def transaction():
    """Yield a session bound to a started transaction, or None when disabled.

    Multi-document transactions need a replica set. Without them callers fall
    back to compensating writes.
    """
    if not Settings.MONGO_TRANSACTIONS:
        yield None
        return

    async with await get_client().start_session() as session:
        async with session.start_transaction():
            yield session
