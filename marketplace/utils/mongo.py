from datetime import datetime, timezone
from decimal import Decimal

from bson import ObjectId, Decimal128

from marketplace.exceptions import BadRequest


def obj_id(id: str, label: str = "ID") -> ObjectId:
    try:
        return ObjectId(id)
    except Exception:
        raise BadRequest(f"Invalid {label} format")


def is_obj_id(id) -> bool:
    return isinstance(id, str) and ObjectId.is_valid(id)


def to_decimal128(value) -> Decimal128:
    return Decimal128(Decimal(str(value)))


def from_decimal128(value):
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return value


def utcnow() -> datetime:
    # Mongo round-trips naive UTC datetimes
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def with_id(doc: dict) -> dict:
    """Document with ``_id`` replaced by its string ``id``."""
    return {"id": str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"}}
