from fastapi import APIRouter, Depends, Query, status
from pymongo.errors import DuplicateKeyError

from marketplace.database import Collections
from marketplace.dependencies import ClientUser, CurrentUser, get_database
from marketplace.exceptions import Conflict, Forbidden, NotFound
from marketplace.schemas.common import Message
from marketplace.schemas.order import OrderStatus
from marketplace.schemas.product import RatingCreate, RatingRead
from marketplace.schemas.review import ReviewCreate, ReviewCreated, ReviewPage
from marketplace.services.ratings import set_rating
from marketplace.utils.accounts import full_name
from marketplace.utils.mongo import obj_id, utcnow, with_id

router = APIRouter(
    prefix="/client-products",
    tags=["reviews"],
)


async def _get_product(db, product_id: str) -> dict:
    product = await db[Collections.PRODUCTS].find_one({"_id": obj_id(product_id, "product ID")})
    if product is None:
        raise NotFound("Product not found")
    return product


async def _own_review(db, review_id: str, user_id: str) -> dict:
    review = await db[Collections.REVIEWS].find_one({"_id": obj_id(review_id, "review ID")})
    if review is None:
        raise NotFound("Review not found")
    if review["user_id"] != user_id:
        raise Forbidden("You can only modify your own review")
    return review


@router.get("/rating/{product_id}", response_model=RatingRead)
async def get_rating(product_id: str, current_user: CurrentUser, db=Depends(get_database)):
    product = await _get_product(db, product_id)
    rating = next(
        (r["rating"] for r in product.get("user_ratings") or [] if r["user_id"] == current_user.user_id),
        None,
    )
    return {"rating": rating}


@router.post("/rate-product", response_model=Message)
async def rate_product(data: RatingCreate, current_user: ClientUser, db=Depends(get_database)):
    product = await _get_product(db, data.product_id)
    await set_rating(db, product, current_user.user_id, data.rating)
    return {"detail": "Rating submitted successfully"}


@router.get("/reviews/{product_id}", response_model=ReviewPage)
async def list_reviews(
    product_id: str,
    limit: int = Query(10, ge=1, le=100),
    skip: int = Query(0, ge=0),
    db=Depends(get_database),
):
    obj_id(product_id, "product ID")
    reviews = db[Collections.REVIEWS]
    cursor = reviews.find(
        {"product_id": product_id}, sort=[("updated_at", -1)], skip=skip, limit=limit
    )
    return {
        "reviews": [with_id(r) async for r in cursor],
        "total_reviews": await reviews.count_documents({"product_id": product_id}),
    }


@router.post(
    "/reviews/{product_id}",
    response_model=ReviewCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    product_id: str,
    data: ReviewCreate,
    current_user: ClientUser,
    db=Depends(get_database),
):
    product = await _get_product(db, product_id)
    user_id = current_user.user_id

    purchased = await db[Collections.ORDERS].find_one({
        "user_id": user_id,
        "status": OrderStatus.completed.value,
        "items.product_id": product_id,
    })
    if purchased is None:
        raise Forbidden("Only users who purchased this product can review it")

    reviews = db[Collections.REVIEWS]
    if await reviews.find_one({"product_id": product_id, "user_id": user_id}):
        raise Conflict("You have already reviewed this product")

    user = await db[Collections.USERS].find_one({"_id": obj_id(user_id, "user ID")}) or {}
    now = utcnow()
    try:
        result = await reviews.insert_one({
            "product_id": product_id,
            "user_id": user_id,
            "username": full_name(user) if user else "Anonymous",
            "profile_image": user.get("profile_picture"),
            "rating": data.rating,
            "comment": data.comment,
            "created_at": now,
            "updated_at": now,
        })
    except DuplicateKeyError:
        raise Conflict("You have already reviewed this product")

    await set_rating(db, product, user_id, data.rating)
    return {"detail": "Review submitted successfully", "review_id": str(result.inserted_id)}


@router.put("/reviews/{review_id}", response_model=Message)
async def update_review(
    review_id: str,
    data: ReviewCreate,
    current_user: ClientUser,
    db=Depends(get_database),
):
    review = await _own_review(db, review_id, current_user.user_id)
    await db[Collections.REVIEWS].update_one(
        {"_id": review["_id"]},
        {"$set": {"rating": data.rating, "comment": data.comment, "updated_at": utcnow()}},
    )

    product = await db[Collections.PRODUCTS].find_one({"_id": obj_id(review["product_id"])})
    if product is not None:
        await set_rating(db, product, current_user.user_id, data.rating)
    return {"detail": "Review updated successfully"}


@router.delete("/reviews/{review_id}", response_model=Message)
async def delete_review(review_id: str, current_user: ClientUser, db=Depends(get_database)):
    review = await _own_review(db, review_id, current_user.user_id)
    await db[Collections.REVIEWS].delete_one({"_id": review["_id"]})

    product = await db[Collections.PRODUCTS].find_one({"_id": obj_id(review["product_id"])})
    if product is not None:
        await set_rating(db, product, current_user.user_id, None)
    return {"detail": "Review deleted successfully"}
