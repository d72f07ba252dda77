"""Order lifecycle: creation with stock reservation, status transitions, reports.

``pending`` is the initial state, ``completed`` and ``canceled`` are terminal.
Inventory is taken on creation and given back on cancellation. With
``MONGO_TRANSACTIONS`` both writes of a step share one transaction; otherwise
the order write is undone by hand when the inventory step fails.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from fastapi import HTTPException

from marketplace.config import DELIVERY_DELAY_DAYS, PLATFORM_FEE_RATE
from marketplace.database import Collections, transaction
from marketplace.exceptions import Conflict, NotFound
from marketplace.schemas.order import OrderCreate, OrderStatus, TERMINAL_STATUSES
from marketplace.schemas.product import QuantityItem
from marketplace.services.inventory import decrease_quantities, increase_quantities
from marketplace.telemetry import tracer
from marketplace.utils.accounts import full_name
from marketplace.utils.mongo import from_decimal128, naive_utc, obj_id, to_decimal128

logger = logging.getLogger(__name__)


def _quantity_items(order: dict) -> list[QuantityItem]:
    return [
        QuantityItem(product_id=item["product_id"], quantity=item["quantity"])
        for item in order["items"]
    ]


def _order_document(data: OrderCreate, recipient_screenshot: str | None) -> dict:
    items = []
    for item in data.items:
        doc = item.model_dump(exclude_none=True)
        doc["price"] = to_decimal128(item.price)
        items.append(doc)

    return {
        "user_id": data.user_id,
        "items": items,
        "total": to_decimal128(data.total),
        "payment_method": data.payment_method,
        "account_holder_name": data.account_holder_name,
        "account_number": data.account_number,
        "recipient_screenshot": recipient_screenshot,
        "transaction_id": data.transaction_id,
        "status": OrderStatus.pending.value,
        "shipping_address": data.shipping_address,
        "order_date": naive_utc(data.order_date),
        "delivery_date": None,
    }


def _inventory_failure(action: str, exc: Exception) -> HTTPException | None:
    if isinstance(exc, HTTPException):
        return HTTPException(status_code=exc.status_code, detail=f"Failed to {action} quantities: {exc.detail}")
    return None


async def create_order(db, data: OrderCreate, recipient_screenshot: str | None = None) -> dict:
    orders = db[Collections.ORDERS]
    products = db[Collections.PRODUCTS]
    order = _order_document(data, recipient_screenshot)

    with tracer.start_as_current_span("orders.create"):
        async with transaction() as session:
            result = await orders.insert_one(order, session=session)
            order["_id"] = result.inserted_id
            logger.info("Created order %s for user %s", result.inserted_id, data.user_id)

            try:
                await decrease_quantities(products, _quantity_items(order), session)
            except Exception as exc:
                if session is None:
                    await orders.delete_one({"_id": result.inserted_id})
                    logger.warning("Rolled back order %s: %s", result.inserted_id, exc)
                failure = _inventory_failure("decrease", exc)
                if failure is None:
                    raise
                raise failure from exc

    return order


async def get_order(db, order_id: str) -> dict:
    order = await db[Collections.ORDERS].find_one({"_id": obj_id(order_id, "order ID")})
    if order is None:
        raise NotFound("Order not found")
    return order


async def update_status(db, order_id: str, status: OrderStatus) -> dict:
    orders = db[Collections.ORDERS]
    order = await get_order(db, order_id)
    current = OrderStatus(order["status"])

    update = {}
    if status is OrderStatus.completed and order.get("delivery_date") is None:
        update["delivery_date"] = order["order_date"] + timedelta(days=DELIVERY_DELAY_DAYS)

    if current is status and not update:
        return order
    if current in TERMINAL_STATUSES and current is not status:
        raise Conflict(f"Order is already {current.value}")

    update["status"] = status.value
    restore = status is OrderStatus.canceled and current is not OrderStatus.canceled

    with tracer.start_as_current_span("orders.update_status"):
        async with transaction() as session:
            result = await orders.update_one(
                {"_id": order["_id"], "status": current.value},
                {"$set": update},
                session=session,
            )
            if result.modified_count == 0:
                raise Conflict("Order was modified concurrently, retry")
            logger.info("Order %s: %s -> %s", order["_id"], current.value, status.value)

            if restore:
                try:
                    await increase_quantities(db[Collections.PRODUCTS], _quantity_items(order), session)
                except Exception as exc:
                    if session is None:
                        await orders.update_one(
                            {"_id": order["_id"]}, {"$set": {"status": current.value}}
                        )
                        logger.warning("Reverted order %s to %s: %s", order["_id"], current.value, exc)
                    failure = _inventory_failure("restore", exc)
                    if failure is None:
                        raise
                    raise failure from exc

    order.update(update)
    return order


async def delete_order(db, order_id: str):
    orders = db[Collections.ORDERS]
    order = await get_order(db, order_id)

    if OrderStatus(order["status"]) not in TERMINAL_STATUSES:
        raise Conflict("Only completed or canceled orders can be deleted")

    result = await orders.delete_one(
        {"_id": order["_id"], "status": {"$in": [s.value for s in TERMINAL_STATUSES]}}
    )
    if result.deleted_count == 0:
        raise NotFound("Order not found")
    logger.info("Deleted order %s", order["_id"])


async def list_client_orders(db, user_id: str) -> list[dict]:
    cursor = db[Collections.ORDERS].find({"user_id": user_id}, sort=[("order_date", -1)])
    return [doc async for doc in cursor]


async def list_all_orders(db) -> list[dict]:
    cursor = db[Collections.ORDERS].find({}, sort=[("order_date", -1)])
    return [doc async for doc in cursor]


async def list_seller_orders(db, seller_id: str) -> list[dict]:
    """Orders holding the seller's items, pruned to those items."""
    cursor = db[Collections.ORDERS].find({"items.seller_id": seller_id}, sort=[("order_date", -1)])
    orders = []
    async for order in cursor:
        order["items"] = [item for item in order["items"] if item.get("seller_id") == seller_id]
        order["created_at"] = order["order_date"]
        orders.append(order)
    return orders


async def seller_revenue(db) -> list[dict]:
    """Items of completed orders grouped by seller, with the platform fee deducted."""
    completed = [
        doc async for doc in db[Collections.ORDERS].find({"status": OrderStatus.completed.value})
    ]

    titles = {
        str(p["_id"]): p.get("title") or "Unknown Product"
        async for p in db[Collections.PRODUCTS].find({}, {"title": 1})
    }
    sellers = {
        str(s["_id"]): s
        async for s in db[Collections.SELLERS].find(
            {}, {"first_name": 1, "last_name": 1, "email": 1, "profile_picture": 1}
        )
    }

    grouped = {}
    totals = defaultdict(Decimal)
    for order in completed:
        for item in order["items"]:
            seller_id = item["seller_id"]
            if seller_id not in grouped:
                seller = sellers.get(seller_id)
                grouped[seller_id] = {
                    "seller": {
                        "id": seller_id,
                        "name": full_name(seller) if seller else "Unknown Seller",
                        "profile_picture": seller.get("profile_picture") if seller else None,
                    },
                    "products": [],
                }
            price = from_decimal128(item["price"])
            item_total = price * item["quantity"]
            grouped[seller_id]["products"].append({
                "product_id": item["product_id"],
                "name": titles.get(item["product_id"], "Unknown Product"),
                "image": item.get("image"),
                "price": price,
                "quantity": item["quantity"],
                "total_item_price": item_total,
                "order_id": str(order["_id"]),
                "order_date": order["order_date"],
            })
            totals[seller_id] += item_total

    result = []
    for seller_id, entry in grouped.items():
        entry["total_price"] = totals[seller_id]
        entry["total_after_fee"] = totals[seller_id] * (1 - PLATFORM_FEE_RATE)
        result.append(entry)
    return result


async def orders_over_time(db) -> list[dict]:
    buckets = defaultdict(lambda: {"count": 0, "total_price": Decimal(0)})
    async for order in db[Collections.ORDERS].find({}, {"order_date": 1, "total": 1}):
        key = order["order_date"].strftime("%Y-%m")
        buckets[key]["count"] += 1
        buckets[key]["total_price"] += from_decimal128(order.get("total", 0))
    return [{"date": key, **buckets[key]} for key in sorted(buckets)]


async def count_orders(db) -> int:
    return await db[Collections.ORDERS].count_documents({})


async def status_breakdown(db) -> dict:
    breakdown = {s.value: 0 for s in OrderStatus}
    cursor = db[Collections.ORDERS].aggregate([
        {"$group": {"_id": "$status", "count": {"$sum": 1}}},
    ])
    async for row in cursor:
        if row["_id"] in breakdown:
            breakdown[row["_id"]] = row["count"]
    return breakdown


async def completed_stats(db) -> dict:
    count = 0
    total = Decimal(0)
    async for order in db[Collections.ORDERS].find({"status": OrderStatus.completed.value}, {"total": 1}):
        count += 1
        total += from_decimal128(order.get("total", 0))
    return {"completed_orders": count, "total_price": total}
