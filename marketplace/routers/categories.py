from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from marketplace.database import Collections
from marketplace.dependencies import AdminUser, get_database, get_storage
from marketplace.exceptions import BadRequest, NotFound
from marketplace.schemas.category import CategoryRead
from marketplace.schemas.common import Message
from marketplace.utils.mongo import obj_id, utcnow, with_id

router = APIRouter(tags=["categories"])


@router.get("/categories", response_model=List[CategoryRead])
async def list_categories(db=Depends(get_database)):
    return [with_id(c) async for c in db[Collections.CATEGORIES].find({}, sort=[("name", 1)])]


@router.post(
    "/admin/categories",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    _: AdminUser,
    name: str = Form(...),
    image: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    name = name.strip()
    if not name:
        raise BadRequest("Category name is required")

    doc = {
        "name": name,
        "image": await files.save(image, "categories") if image else None,
        "created_at": utcnow(),
    }
    result = await db[Collections.CATEGORIES].insert_one(doc)
    doc["_id"] = result.inserted_id
    return with_id(doc)


@router.put("/admin/categories/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: str,
    _: AdminUser,
    name: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    categories = db[Collections.CATEGORIES]
    category = await categories.find_one({"_id": obj_id(category_id, "category ID")})
    if category is None:
        raise NotFound("Category not found")

    update = {}
    if name is not None:
        if not name.strip():
            raise BadRequest("Category name is required")
        update["name"] = name.strip()
    if image is not None:
        update["image"] = await files.save(image, "categories")

    if update:
        await categories.update_one({"_id": category["_id"]}, {"$set": update})
        category.update(update)
    return with_id(category)


@router.delete("/admin/categories/{category_id}", response_model=Message)
async def delete_category(category_id: str, _: AdminUser, db=Depends(get_database)):
    result = await db[Collections.CATEGORIES].delete_one({"_id": obj_id(category_id, "category ID")})
    if result.deleted_count == 0:
        raise NotFound("Category not found")
    return {"detail": "Category deleted successfully"}
