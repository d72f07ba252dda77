from datetime import datetime

import pytest
from bson import ObjectId

from marketplace.database import Collections
from marketplace.services.ratings import set_rating

from conftest import auth


@pytest.fixture
async def purchased(db, seeded):
    phone = seeded["products"][0]
    await db[Collections.ORDERS].insert_one({
        "user_id": seeded["client"],
        "items": [{"product_id": phone, "seller_id": seeded["seller"], "quantity": 1, "price": 100}],
        "status": "completed",
        "order_date": datetime(2024, 5, 1),
    })
    return phone


async def product(db, product_id):
    return await db[Collections.PRODUCTS].find_one({"_id": ObjectId(product_id)})


async def test_review_requires_completed_purchase(client, seeded):
    case = seeded["products"][1]
    resp = client.post(
        f"/client-products/reviews/{case}",
        json={"rating": 4, "comment": "nice"},
        headers=auth(seeded["client"], "client"),
    )
    assert resp.status_code == 403


async def test_one_review_per_product(client, db, seeded, purchased):
    headers = auth(seeded["client"], "client")
    url = f"/client-products/reviews/{purchased}"

    resp = client.post(url, json={"rating": 4, "comment": "solid"}, headers=headers)
    assert resp.status_code == 201
    assert client.post(url, json={"rating": 5}, headers=headers).status_code == 409

    doc = await product(db, purchased)
    assert doc["rating_count"] == 1
    assert doc["average_rating"] == 4

    page = client.get(url).json()
    assert page["total_reviews"] == 1
    assert page["reviews"][0]["username"] == "Ann Buyer"


async def test_edit_and_delete_own_review(client, db, seeded, purchased):
    headers = auth(seeded["client"], "client")
    review_id = client.post(
        f"/client-products/reviews/{purchased}", json={"rating": 2}, headers=headers
    ).json()["review_id"]

    stranger = auth(ObjectId(), "client")
    assert client.put(f"/client-products/reviews/{review_id}", json={"rating": 1}, headers=stranger).status_code == 403

    assert client.put(f"/client-products/reviews/{review_id}", json={"rating": 5}, headers=headers).status_code == 200
    assert (await product(db, purchased))["average_rating"] == 5

    assert client.delete(f"/client-products/reviews/{review_id}", headers=headers).status_code == 200
    doc = await product(db, purchased)
    assert doc["rating_count"] == 0
    assert doc["average_rating"] == 0


async def test_rating_average(client, db, seeded):
    phone = seeded["products"][0]
    other = str(ObjectId())

    for user, rating in ((seeded["client"], 5), (other, 2), (seeded["client"], 3)):
        resp = client.post(
            "/client-products/rate-product",
            json={"product_id": phone, "rating": rating},
            headers=auth(user, "client"),
        )
        assert resp.status_code == 200

    doc = await product(db, phone)
    assert doc["rating_count"] == 2
    assert doc["average_rating"] == 2.5

    resp = client.get(f"/client-products/rating/{phone}", headers=auth(seeded["client"], "client"))
    assert resp.json() == {"rating": 3}
    resp = client.get(f"/client-products/rating/{phone}", headers=auth(ObjectId(), "client"))
    assert resp.json() == {"rating": None}


async def test_rating_out_of_range(client, seeded):
    resp = client.post(
        "/client-products/rate-product",
        json={"product_id": seeded["products"][0], "rating": 6},
        headers=auth(seeded["client"], "client"),
    )
    assert resp.status_code == 422


async def test_concurrent_raters_keep_both_ratings(db, seeded):
    phone = seeded["products"][0]
    first_view = await product(db, phone)
    second_view = await product(db, phone)

    await set_rating(db, first_view, "user-a", 5)
    await set_rating(db, second_view, "user-b", 1)

    doc = await product(db, phone)
    assert sorted(r["user_id"] for r in doc["user_ratings"]) == ["user-a", "user-b"]
    assert doc["rating_count"] == 2
    assert doc["average_rating"] == 3


async def test_stale_rating_removal_keeps_other_raters(db, seeded):
    phone = seeded["products"][0]
    await set_rating(db, await product(db, phone), "user-a", 4)
    stale = await product(db, phone)
    await set_rating(db, await product(db, phone), "user-b", 2)

    await set_rating(db, stale, "user-a", None)

    doc = await product(db, phone)
    assert doc["user_ratings"] == [{"user_id": "user-b", "rating": 2}]
    assert doc["average_rating"] == 2
