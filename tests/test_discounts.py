from datetime import datetime
from decimal import Decimal

import pytest
from bson import ObjectId

from marketplace.database import Collections

from conftest import auth


@pytest.fixture
def offer(seeded):
    return {
        "product_id": seeded["products"][0],
        "user_id": seeded["client"],
        "chat_id": str(ObjectId()),
        "negotiated_price": 80.5,
        "expiry": "2099-01-01T00:00:00Z",
    }


async def test_seller_saves_then_updates_discount(client, db, seeded, offer):
    headers = auth(seeded["seller"], "seller")

    first = client.post("/discounts", json=offer, headers=headers)
    assert first.status_code == 201
    assert Decimal(first.json()["negotiated_price"]) == Decimal("80.5")

    second = client.post("/discounts", json={**offer, "negotiated_price": 75}, headers=headers)
    assert second.json()["id"] == first.json()["id"]
    assert await db[Collections.DISCOUNTS].count_documents({}) == 1


async def test_buyer_view(client, seeded, offer):
    buyer = auth(seeded["client"], "client")
    product_id = seeded["products"][0]

    assert client.get(f"/discounts/{product_id}", headers=buyer).json() == {}

    client.post("/discounts", json=offer, headers=auth(seeded["seller"], "seller"))
    resp = client.get(f"/discounts/{product_id}", headers=buyer).json()
    assert resp["user_id"] == seeded["client"]
    assert Decimal(resp["negotiated_price"]) == Decimal("80.5")


async def test_expired_discount_is_ignored(client, db, seeded, offer):
    await db[Collections.DISCOUNTS].insert_one({
        "product_id": offer["product_id"], "user_id": offer["user_id"],
        "chat_id": offer["chat_id"], "negotiated_price": 10, "expiry": datetime(2000, 1, 1),
    })

    resp = client.get(f"/discounts/{offer['product_id']}", headers=auth(seeded["client"], "client"))
    assert resp.json() == {}


@pytest.mark.parametrize("change, status", [
    ({"negotiated_price": 0}, 422),
    ({"expiry": "2001-01-01T00:00:00Z"}, 400),
    ({"user_id": str(ObjectId())}, 404),
])
async def test_invalid_offers(client, seeded, offer, change, status):
    resp = client.post("/discounts", json={**offer, **change}, headers=auth(seeded["seller"], "seller"))
    assert resp.status_code == status


async def test_other_seller_cannot_touch_discounts(client, seeded, offer):
    stranger = auth(ObjectId(), "seller")
    product_id, user_id = offer["product_id"], offer["user_id"]

    assert client.post("/discounts", json=offer, headers=stranger).status_code == 403
    assert client.get(f"/discounts/{product_id}/{user_id}", headers=stranger).status_code == 403
    assert client.delete(f"/discounts/{product_id}/{user_id}", headers=stranger).status_code == 403


async def test_seller_reads_and_deletes(client, seeded, offer):
    headers = auth(seeded["seller"], "seller")
    product_id, user_id = offer["product_id"], offer["user_id"]

    assert client.delete(f"/discounts/{product_id}/{user_id}", headers=headers).status_code == 404

    client.post("/discounts", json=offer, headers=headers)
    assert client.get(f"/discounts/{product_id}/{user_id}", headers=headers).json()["chat_id"] == offer["chat_id"]
    assert client.delete(f"/discounts/{product_id}/{user_id}", headers=headers).status_code == 200
    assert client.get(f"/discounts/{product_id}/{user_id}", headers=headers).json() == {}


async def test_expired_discount_is_not_reused(client, db, seeded, offer):
    expired = await db[Collections.DISCOUNTS].insert_one({
        "product_id": offer["product_id"], "user_id": offer["user_id"],
        "chat_id": offer["chat_id"], "negotiated_price": 10, "expiry": datetime(2000, 1, 1),
    })

    resp = client.post("/discounts", json=offer, headers=auth(seeded["seller"], "seller"))

    assert resp.status_code == 201
    saved = resp.json()
    assert saved["id"] != str(expired.inserted_id)
    assert saved["product_id"] == offer["product_id"]
    assert saved["user_id"] == offer["user_id"]
    assert await db[Collections.DISCOUNTS].count_documents({}) == 2
