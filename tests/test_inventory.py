import pytest
from bson import ObjectId
from fastapi import HTTPException

from marketplace.database import Collections
from marketplace.schemas.product import QuantityItem
from marketplace.services.inventory import decrease_quantities, increase_quantities

from conftest import auth, stock


def items(*pairs):
    return [QuantityItem(product_id=p, quantity=q) for p, q in pairs]


async def test_decrease_takes_stock(db, seeded):
    phone, case = seeded["products"]
    await decrease_quantities(db[Collections.PRODUCTS], items((phone, 4), (case, 3)))

    assert await stock(db, phone) == 6
    assert await stock(db, case) == 0


async def test_insufficient_quantity_leaves_batch_untouched(db, seeded):
    phone, case = seeded["products"]

    with pytest.raises(HTTPException) as exc:
        await decrease_quantities(db[Collections.PRODUCTS], items((phone, 2), (case, 4)))

    assert exc.value.status_code == 409
    assert case in exc.value.detail
    assert await stock(db, phone) == 10
    assert await stock(db, case) == 3


async def test_missing_product_rejected_before_any_write(db, seeded):
    phone, _ = seeded["products"]
    missing = str(ObjectId())

    with pytest.raises(HTTPException) as exc:
        await decrease_quantities(db[Collections.PRODUCTS], items((phone, 1), (missing, 1)))

    assert exc.value.status_code == 404
    assert missing in exc.value.detail
    assert await stock(db, phone) == 10


@pytest.mark.parametrize("product_id, quantity", [("not-an-id", 1), (None, 0)])
async def test_invalid_entries(db, seeded, product_id, quantity):
    product_id = product_id or seeded["products"][0]
    with pytest.raises(HTTPException) as exc:
        await increase_quantities(db[Collections.PRODUCTS], items((product_id, quantity)))
    assert exc.value.status_code == 400


async def test_empty_batch(db, seeded):
    with pytest.raises(HTTPException) as exc:
        await decrease_quantities(db[Collections.PRODUCTS], [])
    assert exc.value.status_code == 400


async def test_increase(db, seeded):
    phone, _ = seeded["products"]
    await increase_quantities(db[Collections.PRODUCTS], items((phone, 5)))
    assert await stock(db, phone) == 15


async def test_quantity_endpoints_require_admin(client, seeded):
    phone, _ = seeded["products"]
    body = {"items": [{"product_id": phone, "quantity": 1}]}

    resp = client.put("/products/decrease-quantities", json=body, headers=auth(seeded["client"], "client"))
    assert resp.status_code == 403

    resp = client.put("/products/decrease-quantities", json=body, headers=auth(seeded["admin"], "admin"))
    assert resp.status_code == 200
    assert resp.json() == {"detail": "Product quantities updated"}


async def test_quantity_endpoint_conflict(client, db, seeded):
    _, case = seeded["products"]
    body = {"items": [{"product_id": case, "quantity": 99}]}

    resp = client.put("/products/decrease-quantities", json=body, headers=auth(seeded["admin"], "admin"))

    assert resp.status_code == 409
    assert await stock(db, case) == 3
