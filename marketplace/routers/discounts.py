import logging

from fastapi import APIRouter, Depends, status
from pymongo import ReturnDocument

from marketplace.database import Collections
from marketplace.dependencies import CurrentUser, SellerUser, get_database
from marketplace.exceptions import BadRequest, Forbidden, NotFound
from marketplace.schemas.common import Message
from marketplace.schemas.discount import DiscountCreate, DiscountRead
from marketplace.utils.mongo import naive_utc, obj_id, to_decimal128, utcnow, with_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/discounts",
    tags=["discounts"],
)


async def _product_of_seller(db, product_id: str, seller_id: str, action: str) -> dict:
    product = await db[Collections.PRODUCTS].find_one({"_id": obj_id(product_id, "product ID")})
    if product is None:
        raise NotFound("Product not found")
    if product.get("seller_id") != seller_id:
        raise Forbidden(f"Only the seller can {action} discounts")
    return product


def _active(product_id: str, user_id: str) -> dict:
    return {"product_id": product_id, "user_id": user_id, "expiry": {"$gt": utcnow()}}


def _view(doc):
    # an empty object means "no active discount"
    return DiscountRead(**with_id(doc)) if doc else {}


@router.post(
    "",
    response_model=DiscountRead,
    status_code=status.HTTP_201_CREATED,
)
async def save_discount(data: DiscountCreate, current_user: SellerUser, db=Depends(get_database)):
    expiry = naive_utc(data.expiry)
    if expiry <= utcnow():
        raise BadRequest("Expiry date must be a valid future date")

    if await db[Collections.USERS].find_one({"_id": obj_id(data.user_id, "user ID")}) is None:
        raise NotFound("Buyer not found")
    await _product_of_seller(db, data.product_id, current_user.user_id, "set")

    # on insert, product_id and user_id come from the filter
    doc = await db[Collections.DISCOUNTS].find_one_and_update(
        _active(data.product_id, data.user_id),
        {"$set": {
            "negotiated_price": to_decimal128(data.negotiated_price),
            "chat_id": data.chat_id,
            "expiry": expiry,
        }},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )

    logger.info("Discount for product %s and buyer %s saved", data.product_id, data.user_id)
    return with_id(doc)


@router.get("/{product_id}")
async def get_my_discount(product_id: str, current_user: CurrentUser, db=Depends(get_database)):
    obj_id(product_id, "product ID")
    doc = await db[Collections.DISCOUNTS].find_one(_active(product_id, current_user.user_id))
    return _view(doc)


@router.get("/{product_id}/{user_id}")
async def get_buyer_discount(
    product_id: str,
    user_id: str,
    current_user: SellerUser,
    db=Depends(get_database),
):
    obj_id(user_id, "user ID")
    await _product_of_seller(db, product_id, current_user.user_id, "view")
    doc = await db[Collections.DISCOUNTS].find_one(_active(product_id, user_id))
    return _view(doc)


@router.delete("/{product_id}/{user_id}", response_model=Message)
async def delete_discount(
    product_id: str,
    user_id: str,
    current_user: SellerUser,
    db=Depends(get_database),
):
    obj_id(user_id, "user ID")
    await _product_of_seller(db, product_id, current_user.user_id, "delete")

    discounts = db[Collections.DISCOUNTS]
    existing = await discounts.find_one(_active(product_id, user_id))
    if existing is None:
        raise NotFound("No active discount found for this product and user")

    await discounts.delete_one({"_id": existing["_id"]})
    return {"detail": "Discount deleted successfully"}
