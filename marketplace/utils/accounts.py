import asyncio
from collections import Counter
from dataclasses import dataclass

from marketplace.database import Collections
from marketplace.exceptions import Conflict
from marketplace.schemas.common import Role

ACCOUNT_COLLECTIONS = {
    Role.client: Collections.USERS,
    Role.seller: Collections.SELLERS,
    Role.admin: Collections.ADMINS,
}


@dataclass
class Account:
    role: Role
    doc: dict

    @property
    def id(self) -> str:
        return str(self.doc["_id"])

    @property
    def email(self) -> str:
        return self.doc["email"]

    @property
    def collection(self) -> str:
        return ACCOUNT_COLLECTIONS[self.role]


def accounts_collection(db, role: Role):
    return db[ACCOUNT_COLLECTIONS[Role(role)]]


async def find_account(db, email: str) -> Account | None:
    """Look an email up in every role collection at once.

    Emails are unique across the three collections, so at most one hit exists.
    """
    email = email.lower()
    roles = list(ACCOUNT_COLLECTIONS)
    docs = await asyncio.gather(
        *(db[ACCOUNT_COLLECTIONS[role]].find_one({"email": email}) for role in roles)
    )
    for role, doc in zip(roles, docs):
        if doc is not None:
            return Account(role=role, doc=doc)
    return None


async def find_account_by_id(db, role: Role, account_id) -> Account | None:
    doc = await accounts_collection(db, role).find_one({"_id": account_id})
    return Account(role=Role(role), doc=doc) if doc else None


def full_name(doc: dict) -> str:
    name = f"{doc.get('first_name', '')} {doc.get('last_name', '')}".strip()
    return name or doc.get("email", "")


async def ensure_email_free(db, email: str, owner=None):
    """Raise 409 when ``email`` already belongs to an account other than ``owner``."""
    account = await find_account(db, email)
    if account is not None and account.doc["_id"] != owner:
        raise Conflict("Email already registered")


async def registrations_over_time(db, role: Role) -> list[dict]:
    months = Counter()
    async for doc in accounts_collection(db, role).find({"created_at": {"$ne": None}}, {"created_at": 1}):
        months[doc["created_at"].strftime("%Y-%m")] += 1
    return [{"date": key, "count": months[key]} for key in sorted(months)]
