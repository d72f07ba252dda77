import os

os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["MONGO_TRANSACTIONS"] = "false"
os.environ["OTEL_EXPORTER_OTLP_ENDPOINT"] = ""

from datetime import datetime
from decimal import Decimal

import pytest
from bson import ObjectId, Decimal128
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

import marketplace.database as database
from marketplace.database import Collections
from marketplace.dependencies import get_mailer, get_storage
from marketplace.main import app
from marketplace.realtime import rooms
from marketplace.utils.tokens import create_access_token


class FakeStorage:
    def __init__(self):
        self.saved = []

    async def save(self, file, folder):
        path = f"/uploads/{folder}/{file.filename}"
        self.saved.append(path)
        return path

    async def delete(self, path):
        self.saved.remove(path)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.ok = True

    async def send(self, to, subject, text, html=None):
        self.sent.append({"to": to, "subject": subject, "text": text})
        return self.ok


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    monkeypatch.setattr(database, "client", AsyncMongoMockClient())
    rooms.rooms.clear()
    yield database.get_db()
    rooms.rooms.clear()


@pytest.fixture
def db(mongo):
    return mongo


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(mongo, storage, mailer, monkeypatch):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: mailer
    # keep the mock client across the app shutdown hook
    monkeypatch.setattr("marketplace.main.close_db", lambda: None)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth(user_id, role, email=None):
    token = create_access_token(str(user_id), role, email or f"{role}-{user_id}@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def ids():
    return {
        "client": ObjectId(),
        "seller": ObjectId(),
        "admin": ObjectId(),
        "category": ObjectId(),
    }


@pytest.fixture
async def seeded(db, ids):
    """One client, seller, admin, category and two products of the seller."""
    now = datetime(2024, 5, 1, 10, 0)
    await db[Collections.USERS].insert_one({
        "_id": ids["client"], "first_name": "Ann", "last_name": "Buyer",
        "email": "ann@example.com", "role": "client", "created_at": now,
    })
    await db[Collections.SELLERS].insert_one({
        "_id": ids["seller"], "first_name": "Sam", "last_name": "Seller",
        "email": "sam@example.com", "role": "seller", "created_at": now,
    })
    await db[Collections.ADMINS].insert_one({
        "_id": ids["admin"], "first_name": "Ada", "last_name": "Admin",
        "email": "ada@example.com", "role": "admin", "created_at": now,
    })
    await db[Collections.CATEGORIES].insert_one({"_id": ids["category"], "name": "Phones"})

    products = []
    for title, price, quantity in (("Phone", "100.00", 10), ("Case", "15.50", 3)):
        result = await db[Collections.PRODUCTS].insert_one({
            "title": title,
            "price": Decimal128(Decimal(price)),
            "description": "",
            "category_id": str(ids["category"]),
            "seller_id": str(ids["seller"]),
            "image": f"/uploads/products/{title}.png",
            "quantity": quantity,
            "product_status": "available",
            "user_ratings": [],
            "average_rating": 0,
            "rating_count": 0,
            "created_at": now,
            "updated_at": now,
        })
        products.append(str(result.inserted_id))
    return {**{k: str(v) for k, v in ids.items()}, "products": products}


async def stock(db, product_id):
    doc = await db[Collections.PRODUCTS].find_one({"_id": ObjectId(product_id)})
    return doc["quantity"]
