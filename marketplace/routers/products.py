import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from marketplace.database import Collections
from marketplace.dependencies import AdminUser, CurrentUser, SellerUser, get_database, get_storage
from marketplace.exceptions import Forbidden, NotFound
from marketplace.schemas.common import Message
from marketplace.schemas.product import (
    ProductCreate, ProductRead, ProductStatus, ProductTotal,
    ProductUpdate, QuantityAdjustment,
)
from marketplace.services.inventory import Direction, adjust_quantities
from marketplace.utils.mongo import obj_id, to_decimal128, utcnow, with_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


async def _get_product(db, product_id: str) -> dict:
    product = await db[Collections.PRODUCTS].find_one({"_id": obj_id(product_id, "product ID")})
    if product is None:
        raise NotFound("Product not found")
    return product


async def _ensure_category(db, category_id: str):
    if await db[Collections.CATEGORIES].find_one({"_id": obj_id(category_id, "category ID")}) is None:
        raise NotFound("Category not found")


def _validated(model, **fields):
    try:
        return model(**fields)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))


async def _insert_product(db, files, data: ProductCreate, image: UploadFile, seller_id: Optional[str]) -> dict:
    await _ensure_category(db, data.category_id)

    now = utcnow()
    doc = {
        **data.model_dump(),
        "price": to_decimal128(data.price),
        "seller_id": seller_id,
        "image": await files.save(image, "products"),
        "product_status": ProductStatus.available.value,
        "user_ratings": [],
        "average_rating": 0,
        "rating_count": 0,
        "created_at": now,
        "updated_at": now,
    }
    result = await db[Collections.PRODUCTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def _update_product(db, files, product: dict, fields: dict, image: Optional[UploadFile]) -> dict:
    data = _validated(ProductUpdate, **{k: v for k, v in fields.items() if v is not None})
    update = data.model_dump(exclude_unset=True, mode="json")
    if data.price is not None:
        update["price"] = to_decimal128(data.price)
    if data.category_id is not None:
        await _ensure_category(db, data.category_id)
    if image is not None:
        update["image"] = await files.save(image, "products")

    if not update:
        return product

    update["updated_at"] = utcnow()
    await db[Collections.PRODUCTS].update_one({"_id": product["_id"]}, {"$set": update})
    product.update(update)
    return product


# -------- Inventory --------
@router.put("/products/decrease-quantities", response_model=Message)
async def decrease_quantities(
    payload: QuantityAdjustment,
    _: AdminUser,
    db=Depends(get_database),
):
    await adjust_quantities(db[Collections.PRODUCTS], payload.items, Direction.decrease)
    return {"detail": "Product quantities updated"}


@router.put("/products/increase-quantities", response_model=Message)
async def increase_quantities(
    payload: QuantityAdjustment,
    _: AdminUser,
    db=Depends(get_database),
):
    await adjust_quantities(db[Collections.PRODUCTS], payload.items, Direction.increase)
    return {"detail": "Product quantities updated"}


# -------- Public catalogue --------
@router.get("/products", response_model=List[ProductRead])
async def list_products(db=Depends(get_database)):
    return [with_id(p) async for p in db[Collections.PRODUCTS].find()]


@router.get("/products/total", response_model=ProductTotal)
async def total_products(db=Depends(get_database)):
    return {"total_products": await db[Collections.PRODUCTS].count_documents({})}


@router.get("/client-products", response_model=List[ProductRead])
async def list_client_products(
    _: CurrentUser,
    category_id: Optional[str] = Query(None),
    product_id: Optional[str] = Query(None),
    db=Depends(get_database),
):
    query = {}
    if category_id:
        obj_id(category_id, "category ID")
        query["category_id"] = category_id
    if product_id:
        query["_id"] = obj_id(product_id, "product ID")
    return [with_id(p) async for p in db[Collections.PRODUCTS].find(query)]


# -------- Seller endpoints --------
@router.get("/seller/products/{seller_id}", response_model=List[ProductRead])
async def list_seller_products(
    seller_id: str,
    current_user: SellerUser,
    db=Depends(get_database),
):
    if current_user.user_id != seller_id:
        raise Forbidden("Unauthorized to view these products")
    cursor = db[Collections.PRODUCTS].find({"seller_id": seller_id}, sort=[("created_at", -1)])
    return [with_id(p) async for p in cursor]


@router.post(
    "/seller/products",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    current_user: SellerUser,
    title: str = Form(...),
    price: str = Form(...),
    category_id: str = Form(...),
    quantity: str = Form(...),
    description: str = Form(""),
    image: UploadFile = File(...),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    data = _validated(
        ProductCreate,
        title=title, price=price, category_id=category_id,
        quantity=quantity, description=description,
    )
    doc = await _insert_product(db, files, data, image, current_user.user_id)
    logger.info("Seller %s created product %s", current_user.user_id, doc["_id"])
    return with_id(doc)


@router.put("/seller/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    current_user: SellerUser,
    title: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    product_status: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    product = await _get_product(db, product_id)
    if product.get("seller_id") != current_user.user_id:
        raise Forbidden("Unauthorized to update this product")

    fields = {
        "title": title, "price": price, "description": description,
        "category_id": category_id, "quantity": quantity, "product_status": product_status,
    }
    return with_id(await _update_product(db, files, product, fields, image))


@router.delete("/seller/products/{product_id}", response_model=Message)
async def delete_seller_product(
    product_id: str,
    current_user: SellerUser,
    db=Depends(get_database),
):
    product = await _get_product(db, product_id)
    if product.get("seller_id") != current_user.user_id:
        raise Forbidden("Unauthorized to delete this product")

    await db[Collections.PRODUCTS].delete_one({"_id": product["_id"]})
    return {"detail": "Product deleted successfully"}


# -------- Admin endpoints --------
@router.get("/admin/products", response_model=List[ProductRead])
async def list_all_products(_: AdminUser, db=Depends(get_database)):
    cursor = db[Collections.PRODUCTS].find({}, sort=[("created_at", -1)])
    return [with_id(p) async for p in cursor]


@router.post(
    "/admin/products",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def admin_create_product(
    _: AdminUser,
    title: str = Form(...),
    price: str = Form(...),
    category_id: str = Form(...),
    quantity: str = Form(...),
    description: str = Form(""),
    seller_id: Optional[str] = Form(None),
    image: UploadFile = File(...),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    data = _validated(
        ProductCreate,
        title=title, price=price, category_id=category_id,
        quantity=quantity, description=description,
    )
    if seller_id:
        seller = await db[Collections.SELLERS].find_one({"_id": obj_id(seller_id, "seller ID")})
        if seller is None:
            raise NotFound("Seller not found")

    doc = await _insert_product(db, files, data, image, seller_id or None)
    logger.info("Admin created product %s", doc["_id"])
    return with_id(doc)


@router.put("/admin/products/{product_id}", response_model=ProductRead)
async def admin_update_product(
    product_id: str,
    _: AdminUser,
    title: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    product_status: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    product = await _get_product(db, product_id)
    fields = {
        "title": title, "price": price, "description": description,
        "category_id": category_id, "quantity": quantity, "product_status": product_status,
    }
    return with_id(await _update_product(db, files, product, fields, image))


@router.delete("/admin/products/{product_id}", response_model=Message)
async def delete_product(product_id: str, _: AdminUser, db=Depends(get_database)):
    result = await db[Collections.PRODUCTS].delete_one({"_id": obj_id(product_id, "product ID")})
    if result.deleted_count == 0:
        raise NotFound("Product not found")
    logger.info("Admin deleted product %s", product_id)
    return {"detail": "Product deleted successfully"}
