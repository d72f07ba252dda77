import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pymongo.errors import DuplicateKeyError

from marketplace.config import Settings
from marketplace.database import Collections
from marketplace.dependencies import CurrentUser, get_database, get_mailer
from marketplace.exceptions import BadRequest, Conflict, NotFound, Unauthorized
from marketplace.schemas.auth import (
    ChangePassword, ForgotPassword, LoginResponse,
    SignupRequest, SignupResponse, VerifyOtp,
)
from marketplace.schemas.common import Message
from marketplace.utils.accounts import accounts_collection, find_account, find_account_by_id
from marketplace.utils.mail import otp_email
from marketplace.utils.mongo import obj_id, utcnow
from marketplace.utils.passwords import check_secret, hash_secret
from marketplace.utils.tokens import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def signup(data: SignupRequest, db=Depends(get_database)):
    email = data.email.lower()
    if await find_account(db, email):
        raise Conflict("Email already registered")

    now = utcnow()
    doc = {
        **data.model_dump(exclude={"password", "email"}),
        "email": email,
        "password_hash": await hash_secret(data.password),
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await accounts_collection(db, data.role).insert_one(doc)
    except DuplicateKeyError:
        raise Conflict("Email already registered")

    logger.info("Registered %s account %s", data.role, result.inserted_id)
    return {"detail": "User registered successfully", "user_id": str(result.inserted_id)}


@router.post("/login", response_model=LoginResponse)
async def login(
    user_input: OAuth2PasswordRequestForm = Depends(),
    db=Depends(get_database),
):
    account = await find_account(db, user_input.username)
    if account is None:
        raise Unauthorized("Invalid email or password")

    if not await check_secret(user_input.password, account.doc.get("password_hash")):
        raise Unauthorized("Invalid email or password")

    access_token = create_access_token(account.id, account.role.value, account.email)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user_id": account.id,
        "role": account.role,
    }


@router.post("/change-password", response_model=Message)
async def change_password(
    data: ChangePassword,
    current_user: CurrentUser,
    db=Depends(get_database),
):
    account = await find_account_by_id(db, current_user.role, obj_id(current_user.user_id, "user ID"))
    if account is None:
        raise NotFound("Account not found")

    if not await check_secret(data.old_password, account.doc.get("password_hash")):
        raise Unauthorized("Incorrect old password")

    await accounts_collection(db, account.role).update_one(
        {"_id": account.doc["_id"]},
        {"$set": {"password_hash": await hash_secret(data.new_password), "updated_at": utcnow()}},
    )
    return {"detail": "Password changed successfully"}


@router.post("/forgot-password", response_model=Message)
async def forgot_password(
    data: ForgotPassword,
    db=Depends(get_database),
    mailer=Depends(get_mailer),
):
    email = data.email.lower()
    if await find_account(db, email) is None:
        raise NotFound("Email not found")

    length = Settings.OTP_LENGTH
    code = f"{secrets.randbelow(10 ** length):0{length}d}"
    now = utcnow()

    otps = db[Collections.OTPS]
    await otps.delete_many({"email": email})
    await otps.insert_one({
        "email": email,
        "otp_hash": await hash_secret(code),
        "expires_at": now + timedelta(minutes=Settings.OTP_EXPIRE_MINUTES),
        "created_at": now,
    })

    text, html = otp_email(code, Settings.OTP_EXPIRE_MINUTES)
    if not await mailer.send(email, "Your OTP for Password Reset", text, html):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send OTP email")

    return {"detail": "OTP sent successfully"}


@router.post("/verify-otp", response_model=Message)
async def verify_otp(data: VerifyOtp, db=Depends(get_database)):
    email = data.email.lower()
    otps = db[Collections.OTPS]

    otp_doc = await otps.find_one({"email": email})
    if otp_doc is None:
        raise BadRequest("Invalid OTP")

    if otp_doc["expires_at"] < utcnow():
        await otps.delete_many({"email": email})
        raise BadRequest("OTP has expired")

    if not await check_secret(data.otp, otp_doc.get("otp_hash")):
        raise BadRequest("Invalid OTP")

    account = await find_account(db, email)
    if account is None:
        raise NotFound("Account not found")

    await db[account.collection].update_one(
        {"_id": account.doc["_id"]},
        {"$set": {"password_hash": await hash_secret(data.new_password), "updated_at": utcnow()}},
    )
    await otps.delete_many({"email": email})
    logger.info("Password reset for %s account %s", account.role.value, account.id)
    return {"detail": "Password reset successfully"}


__all__ = ["router"]
