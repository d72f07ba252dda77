from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from marketplace.dependencies import AdminUser, CurrentUser, ensure_owner, get_database, get_storage
from marketplace.exceptions import BadRequest, Forbidden
from marketplace.schemas.common import Message, Role
from marketplace.schemas.order import (
    CompletedStats, OrderCreate, OrderRead, OrdersPerMonth, OrderTotal,
    SellerOrderRead, SellerRevenue, StatusBreakdown, StatusUpdate,
)
from marketplace.services import orders as service
from marketplace.utils.mongo import is_obj_id, with_id

router = APIRouter(tags=["orders"])


# -------- Client endpoints --------
@router.post(
    "/client/orders",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    current_user: CurrentUser,
    user_id: str = Form(...),
    items: str = Form(...),
    total: str = Form(...),
    payment_method: str = Form(...),
    account_holder_name: str = Form(...),
    account_number: str = Form(...),
    transaction_id: str = Form(...),
    order_date: str = Form(...),
    shipping_address: Optional[str] = Form(None),
    recipient_screenshot: Optional[UploadFile] = File(None),
    db=Depends(get_database),
    files=Depends(get_storage),
):
    ensure_owner(current_user, user_id, "Unauthorized to create this order")
    if not is_obj_id(user_id):
        raise BadRequest("Invalid user ID format")

    try:
        data = OrderCreate(
            user_id=user_id,
            items=items,
            total=total,
            payment_method=payment_method,
            account_holder_name=account_holder_name,
            account_number=account_number,
            transaction_id=transaction_id,
            shipping_address=shipping_address or None,
            order_date=order_date,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))

    proof = await files.save(recipient_screenshot, "payments") if recipient_screenshot else None
    try:
        order = await service.create_order(db, data, proof)
    except Exception:
        if proof:
            await files.delete(proof)
        raise
    return with_id(order)


@router.get("/client/orders/{user_id}", response_model=List[OrderRead])
async def list_client_orders(
    user_id: str,
    current_user: CurrentUser,
    db=Depends(get_database),
):
    ensure_owner(current_user, user_id, "Unauthorized to view these orders")
    return [with_id(o) for o in await service.list_client_orders(db, user_id)]


# -------- Seller endpoints --------
@router.get("/seller/orders/{seller_id}", response_model=List[SellerOrderRead])
async def list_seller_orders(
    seller_id: str,
    current_user: CurrentUser,
    db=Depends(get_database),
):
    if current_user.role is not Role.admin and current_user.user_id != seller_id:
        raise Forbidden("Unauthorized to view these orders")
    return [with_id(o) for o in await service.list_seller_orders(db, seller_id)]


# -------- Admin endpoints --------
@router.get("/admin/orders", response_model=List[OrderRead])
async def list_orders(_: AdminUser, db=Depends(get_database)):
    return [with_id(o) for o in await service.list_all_orders(db)]


@router.put("/admin/orders/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    _: AdminUser,
    db=Depends(get_database),
):
    order = await service.update_status(db, order_id, payload.status)
    return with_id(order)


@router.delete("/admin/orders/{order_id}", response_model=Message)
async def delete_order(order_id: str, _: AdminUser, db=Depends(get_database)):
    await service.delete_order(db, order_id)
    return {"detail": "Order deleted successfully"}


@router.get("/admin/sold-products", response_model=List[SellerRevenue])
async def sold_products(_: AdminUser, db=Depends(get_database)):
    return await service.seller_revenue(db)


@router.get("/admin/orders/stats/over-time", response_model=List[OrdersPerMonth])
async def orders_over_time(_: AdminUser, db=Depends(get_database)):
    return await service.orders_over_time(db)


@router.get("/admin/orders/stats/total", response_model=OrderTotal)
async def total_orders(_: AdminUser, db=Depends(get_database)):
    return {"total_orders": await service.count_orders(db)}


@router.get("/admin/orders/stats/status-breakdown", response_model=StatusBreakdown)
async def order_status_breakdown(_: AdminUser, db=Depends(get_database)):
    return await service.status_breakdown(db)


@router.get("/admin/orders/stats/completed", response_model=CompletedStats)
async def completed_orders_stats(_: AdminUser, db=Depends(get_database)):
    return await service.completed_stats(db)
