"""Stock counters of products.

Every adjustment validates the whole batch before touching any document.
Decrements are single conditional updates (``quantity >= q``), so a product's
quantity is never written below zero even under concurrent orders.
"""
import logging
from enum import Enum
from typing import Iterable

from pymongo import ReturnDocument

from marketplace.exceptions import BadRequest, Conflict, NotFound
from marketplace.schemas.product import QuantityItem
from marketplace.telemetry import tracer
from marketplace.utils.mongo import obj_id

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    decrease = "decrease"
    increase = "increase"


async def _validate(products, items: list[QuantityItem], session=None) -> list:
    if not items:
        raise BadRequest("Items array is required and must not be empty")

    ids = []
    for item in items:
        if item.quantity <= 0:
            raise BadRequest(f"Invalid quantity for product ID {item.product_id}: {item.quantity}")
        ids.append(obj_id(item.product_id, f"product ID {item.product_id}"))

    found = {
        doc["_id"]
        async for doc in products.find({"_id": {"$in": ids}}, {"_id": 1}, session=session)
    }
    for oid, item in zip(ids, items):
        if oid not in found:
            raise NotFound(f"Product not found: {item.product_id}")
    return ids


async def _increment(products, entries: Iterable[tuple], session=None):
    for oid, quantity in entries:
        await products.update_one({"_id": oid}, {"$inc": {"quantity": quantity}}, session=session)


async def decrease_quantities(products, items: list[QuantityItem], session=None):
    """Take ``quantity`` units of every item out of stock, all or nothing."""
    with tracer.start_as_current_span("inventory.decrease"):
        ids = await _validate(products, items, session)

        applied = []
        for oid, item in zip(ids, items):
            doc = await products.find_one_and_update(
                {"_id": oid, "quantity": {"$gte": item.quantity}},
                {"$inc": {"quantity": -item.quantity}},
                return_document=ReturnDocument.AFTER,
                session=session,
            )
            if doc is None:
                # without a transaction the earlier entries must be put back by hand
                if session is None and applied:
                    logger.warning("Restoring %d earlier entries after failed decrement", len(applied))
                    await _increment(products, applied)
                if await products.find_one({"_id": oid}, {"_id": 1}, session=session) is None:
                    raise NotFound(f"Product not found: {item.product_id}")
                raise Conflict(f"Insufficient quantity for product ID {item.product_id}")

            applied.append((oid, item.quantity))
            logger.info(
                "Decreased quantity for product %s by %d. New quantity: %s",
                item.product_id, item.quantity, doc.get("quantity"),
            )


async def increase_quantities(products, items: list[QuantityItem], session=None):
    """Put ``quantity`` units of every item back into stock."""
    with tracer.start_as_current_span("inventory.increase"):
        ids = await _validate(products, items, session)
        await _increment(products, [(oid, item.quantity) for oid, item in zip(ids, items)], session)
        for item in items:
            logger.info("Increased quantity for product %s by %d", item.product_id, item.quantity)


async def adjust_quantities(products, items: list[QuantityItem], direction: Direction, session=None):
    if direction is Direction.decrease:
        await decrease_quantities(products, items, session)
    else:
        await increase_quantities(products, items, session)
