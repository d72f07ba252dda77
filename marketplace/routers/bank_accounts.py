from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.database import Collections
from marketplace.dependencies import AdminUser, get_database
from marketplace.exceptions import NotFound
from marketplace.schemas.bank_account import BankAccountCreate, BankAccountRead, BankAccountUpdate
from marketplace.schemas.common import Message
from marketplace.utils.mongo import obj_id, utcnow, with_id

router = APIRouter(tags=["bank-accounts"])


@router.get("/admin/accounts", response_model=List[BankAccountRead])
async def payment_accounts(bank: Optional[str] = Query(None), db=Depends(get_database)):
    """Accounts a client can pay into at checkout."""
    query = {"bank": bank} if bank else {}
    return [with_id(a) async for a in db[Collections.BANK_ACCOUNTS].find(query)]


@router.get("/admin/bank-accounts", response_model=List[BankAccountRead])
async def list_bank_accounts(_: AdminUser, db=Depends(get_database)):
    return [with_id(a) async for a in db[Collections.BANK_ACCOUNTS].find()]


@router.get("/admin/bank-accounts/{account_id}", response_model=BankAccountRead)
async def get_bank_account(account_id: str, _: AdminUser, db=Depends(get_database)):
    account = await db[Collections.BANK_ACCOUNTS].find_one({"_id": obj_id(account_id, "account ID")})
    if account is None:
        raise NotFound("Account not found")
    return with_id(account)


@router.post(
    "/admin/bank-accounts",
    response_model=BankAccountRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_bank_account(data: BankAccountCreate, _: AdminUser, db=Depends(get_database)):
    now = utcnow()
    doc = {**data.model_dump(), "created_at": now, "updated_at": now}
    result = await db[Collections.BANK_ACCOUNTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return with_id(doc)


@router.put("/admin/bank-accounts/{account_id}", response_model=BankAccountRead)
async def update_bank_account(
    account_id: str,
    data: BankAccountUpdate,
    _: AdminUser,
    db=Depends(get_database),
):
    accounts = db[Collections.BANK_ACCOUNTS]
    account = await accounts.find_one({"_id": obj_id(account_id, "account ID")})
    if account is None:
        raise NotFound("Account not found")

    update = data.model_dump(exclude_none=True)
    if update:
        update["updated_at"] = utcnow()
        await accounts.update_one({"_id": account["_id"]}, {"$set": update})
        account.update(update)
    return with_id(account)


@router.delete("/admin/bank-accounts/{account_id}", response_model=Message)
async def delete_bank_account(account_id: str, _: AdminUser, db=Depends(get_database)):
    result = await db[Collections.BANK_ACCOUNTS].delete_one({"_id": obj_id(account_id, "account ID")})
    if result.deleted_count == 0:
        raise NotFound("Account not found")
    return {"detail": "Account deleted successfully"}
