import logging
from typing import List

from fastapi import APIRouter, Depends, status
from pymongo.errors import DuplicateKeyError

from marketplace.dependencies import AdminUser, get_database
from marketplace.exceptions import Conflict, NotFound
from marketplace.schemas.common import Message, Role
from marketplace.schemas.profile import (
    AccountRead, AccountTotal, AccountUpdate, RegistrationsPerMonth, SellerCreate,
)
from marketplace.utils.accounts import accounts_collection, ensure_email_free, registrations_over_time
from marketplace.utils.mongo import obj_id, utcnow, with_id
from marketplace.utils.passwords import hash_secret

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin-accounts"],
)


async def _list(db, role: Role) -> list[dict]:
    cursor = accounts_collection(db, role).find({}, {"password_hash": 0}, sort=[("created_at", -1)])
    return [{**with_id(doc), "role": role} async for doc in cursor]


async def _update(db, role: Role, account_id: str, data: AccountUpdate) -> dict:
    collection = accounts_collection(db, role)
    doc = await collection.find_one({"_id": obj_id(account_id, f"{role.value} ID")})
    if doc is None:
        raise NotFound(f"{role.value.capitalize()} not found")

    update = {**data.model_dump(), "email": data.email.lower(), "updated_at": utcnow()}
    await ensure_email_free(db, update["email"], doc["_id"])
    await collection.update_one({"_id": doc["_id"]}, {"$set": update})
    doc.update(update)
    return {**with_id(doc), "role": role}


async def _delete(db, role: Role, account_id: str):
    result = await accounts_collection(db, role).delete_one({"_id": obj_id(account_id, f"{role.value} ID")})
    if result.deleted_count == 0:
        raise NotFound(f"{role.value.capitalize()} not found")
    logger.info("Admin deleted %s %s", role.value, account_id)


# -------- Clients --------
@router.get("/users", response_model=List[AccountRead])
async def list_users(_: AdminUser, db=Depends(get_database)):
    return await _list(db, Role.client)


@router.get("/users/total", response_model=AccountTotal)
async def total_users(_: AdminUser, db=Depends(get_database)):
    return {"total": await accounts_collection(db, Role.client).count_documents({})}


@router.get("/users/over-time", response_model=List[RegistrationsPerMonth])
async def users_over_time(_: AdminUser, db=Depends(get_database)):
    return await registrations_over_time(db, Role.client)


@router.put("/users/{user_id}", response_model=AccountRead)
async def update_user(user_id: str, data: AccountUpdate, _: AdminUser, db=Depends(get_database)):
    return await _update(db, Role.client, user_id, data)


@router.delete("/users/{user_id}", response_model=Message)
async def delete_user(user_id: str, _: AdminUser, db=Depends(get_database)):
    await _delete(db, Role.client, user_id)
    return {"detail": "User deleted successfully"}


# -------- Sellers --------
@router.get("/sellers", response_model=List[AccountRead])
async def list_sellers(_: AdminUser, db=Depends(get_database)):
    return await _list(db, Role.seller)


@router.get("/sellers/total", response_model=AccountTotal)
async def total_sellers(_: AdminUser, db=Depends(get_database)):
    return {"total": await accounts_collection(db, Role.seller).count_documents({})}


@router.get("/sellers/over-time", response_model=List[RegistrationsPerMonth])
async def sellers_over_time(_: AdminUser, db=Depends(get_database)):
    return await registrations_over_time(db, Role.seller)


@router.post(
    "/sellers",
    response_model=AccountRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_seller(data: SellerCreate, _: AdminUser, db=Depends(get_database)):
    email = data.email.lower()
    await ensure_email_free(db, email)

    now = utcnow()
    doc = {
        **data.model_dump(exclude={"password", "email"}),
        "email": email,
        "role": Role.seller.value,
        "password_hash": await hash_secret(data.password),
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await accounts_collection(db, Role.seller).insert_one(doc)
    except DuplicateKeyError:
        raise Conflict("Email already registered")

    doc["_id"] = result.inserted_id
    logger.info("Admin created seller %s", result.inserted_id)
    return {**with_id(doc), "role": Role.seller}


@router.put("/sellers/{seller_id}", response_model=AccountRead)
async def update_seller(seller_id: str, data: AccountUpdate, _: AdminUser, db=Depends(get_database)):
    return await _update(db, Role.seller, seller_id, data)


@router.delete("/sellers/{seller_id}", response_model=Message)
async def delete_seller(seller_id: str, _: AdminUser, db=Depends(get_database)):
    await _delete(db, Role.seller, seller_id)
    return {"detail": "Seller deleted successfully"}
