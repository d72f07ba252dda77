import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from marketplace.dependencies import AdminUser, CurrentUser, ensure_owner, get_database, get_storage
from marketplace.exceptions import NotFound
from marketplace.schemas.common import Role
from marketplace.schemas.profile import AccountRead, ProfileUpdate, PublicProfile
from marketplace.utils.accounts import accounts_collection, ensure_email_free
from marketplace.utils.mongo import obj_id, utcnow, with_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profiles"])

_NOT_FOUND = {
    Role.client: "User not found",
    Role.seller: "Seller not found",
    Role.admin: "Admin not found",
}


async def _load(db, role: Role, account_id: str) -> dict:
    doc = await accounts_collection(db, role).find_one({"_id": obj_id(account_id, f"{role.value} ID")})
    if doc is None:
        raise NotFound(_NOT_FOUND[role])
    return doc


def _read(doc: dict, role: Role) -> dict:
    return {**with_id(doc), "role": role}


def _public(doc: dict) -> dict:
    return {
        "first_name": doc.get("first_name", ""),
        "last_name": doc.get("last_name", ""),
        "email": doc.get("email", ""),
        "profile_picture": doc.get("profile_picture"),
    }


async def _update(db, files, role: Role, account_id: str, fields: dict, picture: Optional[UploadFile]) -> dict:
    doc = await _load(db, role, account_id)
    try:
        data = ProfileUpdate(**{k: v for k, v in fields.items() if v is not None})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))

    update = data.model_dump(exclude_none=True)
    if "email" in update:
        update["email"] = update["email"].lower()
        await ensure_email_free(db, update["email"], doc["_id"])
    if picture is not None:
        update["profile_picture"] = await files.save(picture, "profiles")

    if update:
        update["updated_at"] = utcnow()
        await accounts_collection(db, role).update_one({"_id": doc["_id"]}, {"$set": update})
        doc.update(update)
        logger.info("Updated %s profile %s", role.value, account_id)
    return _read(doc, role)


# -------- Client --------
@router.get("/client/profile/{user_id}", response_model=AccountRead)
async def get_client_profile(user_id: str, current_user: CurrentUser, db=Depends(get_database)):
    ensure_owner(current_user, user_id, "Unauthorized to access this profile")
    return _read(await _load(db, Role.client, user_id), Role.client)


@router.put("/client/profile/{user_id}", response_model=AccountRead)
async def update_client_profile(
    user_id: str,
    current_user: CurrentUser,
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    ensure_owner(current_user, user_id, "Unauthorized to update this profile")
    fields = {"first_name": first_name, "last_name": last_name, "email": email}
    return await _update(db, files, Role.client, user_id, fields, profile_picture)


# -------- Seller --------
@router.get("/seller/profile/{seller_id}", response_model=AccountRead)
async def get_seller_profile(seller_id: str, db=Depends(get_database)):
    return _read(await _load(db, Role.seller, seller_id), Role.seller)


@router.put("/seller/profile/{seller_id}", response_model=AccountRead)
async def update_seller_profile(
    seller_id: str,
    current_user: CurrentUser,
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    ensure_owner(current_user, seller_id, "Unauthorized to update this profile")
    fields = {"first_name": first_name, "last_name": last_name, "email": email}
    return await _update(db, files, Role.seller, seller_id, fields, profile_picture)


# -------- Admin --------
@router.get("/admin/profile/{admin_id}", response_model=AccountRead)
async def get_admin_profile(admin_id: str, _: AdminUser, db=Depends(get_database)):
    return _read(await _load(db, Role.admin, admin_id), Role.admin)


@router.put("/admin/profile/{admin_id}", response_model=AccountRead)
async def update_admin_profile(
    admin_id: str,
    current_user: AdminUser,
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    ensure_owner(current_user, admin_id, "Unauthorized to update this profile")
    fields = {"first_name": first_name, "last_name": last_name, "email": email}
    return await _update(db, files, Role.admin, admin_id, fields, profile_picture)


# -------- Chat counterpart lookup --------
@router.get("/chatprofile/{seller_id}", response_model=PublicProfile)
async def chat_seller_profile(seller_id: str, _: CurrentUser, db=Depends(get_database)):
    return _public(await _load(db, Role.seller, seller_id))


@router.get("/chatprofile/user/{user_id}", response_model=PublicProfile)
async def chat_user_profile(user_id: str, _: CurrentUser, db=Depends(get_database)):
    return _public(await _load(db, Role.client, user_id))
