from fastapi import APIRouter, Depends

from marketplace.database import Collections
from marketplace.dependencies import CurrentUser, ensure_owner, get_database
from marketplace.schemas.address import Address
from marketplace.utils.mongo import obj_id, utcnow

router = APIRouter(
    prefix="/client/address",
    tags=["address"],
)


@router.get("/{user_id}", response_model=Address)
async def get_address(user_id: str, current_user: CurrentUser, db=Depends(get_database)):
    ensure_owner(current_user, user_id, "Unauthorized to access this address")
    obj_id(user_id, "user ID")
    doc = await db[Collections.ADDRESSES].find_one({"user_id": user_id})
    return doc or Address()


@router.put("/{user_id}", response_model=Address)
async def save_address(
    user_id: str,
    data: Address,
    current_user: CurrentUser,
    db=Depends(get_database),
):
    ensure_owner(current_user, user_id, "Unauthorized to update this address")
    obj_id(user_id, "user ID")

    fields = data.model_dump()
    # coordinates travel together
    if data.latitude is None or data.longitude is None:
        fields.update(latitude=None, longitude=None)

    now = utcnow()
    await db[Collections.ADDRESSES].update_one(
        {"user_id": user_id},
        {"$set": {**fields, "updated_at": now}, "$setOnInsert": {"user_id": user_id, "created_at": now}},
        upsert=True,
    )
    return fields
