"""Per-user product ratings and the aggregates derived from them.

The ``user_ratings`` array and its aggregates are written together by a
compare-and-set on the array as it was read, so concurrent raters of the same
product never overwrite each other.
"""
import logging

from marketplace.database import Collections
from marketplace.exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


def summarize(user_ratings: list[dict]) -> dict:
    count = len(user_ratings)
    average = sum(r["rating"] for r in user_ratings) / count if count else 0
    return {
        "user_ratings": user_ratings,
        "average_rating": round(average, 2),
        "rating_count": count,
    }


async def set_rating(db, product: dict, user_id: str, rating: int | None) -> dict:
    """Replace (or with ``None`` remove) ``user_id``'s rating and recompute the aggregates.

    ``product`` may be stale; the write only lands on the array it was computed
    from and is otherwise retried against a fresh read.
    """
    products = db[Collections.PRODUCTS]
    for _ in range(MAX_ATTEMPTS):
        seen = product.get("user_ratings")
        ratings = [r for r in seen or [] if r["user_id"] != user_id]
        if rating is not None:
            ratings.append({"user_id": user_id, "rating": rating})

        update = summarize(ratings)
        result = await products.update_one(
            {"_id": product["_id"], "user_ratings": seen},
            {"$set": update},
        )
        if result.matched_count:
            return update

        logger.debug("Ratings of product %s changed concurrently, retrying", product["_id"])
        product = await products.find_one({"_id": product["_id"]}, {"user_ratings": 1})
        if product is None:
            raise NotFound("Product not found")

    raise Conflict("Product ratings are changing too quickly, retry")
