
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.common.utils import result_response, success_response
from storefront.db.dependencies import get_session
from storefront.orders.models import CheckoutIn, OrderStatus, OrderStatusIn, PaymentStatusIn
from storefront.orders.repository import (
    create_order, get_all_orders, get_order_by_id, get_order_items, get_user_orders,
    update_order_status, update_payment_status,
)
from storefront.user.dependencies import require_admin, require_owner

orders_router = APIRouter()


# checkout: the whole cart becomes one pending order
@orders_router.post("/orders")
async def place_order(payload: CheckoutIn, owner_id: str = Depends(require_owner),
                      session: AsyncSession = Depends(get_session)):
    shipping = payload.shipping_address.model_dump()
    billing = payload.billing_address.model_dump() if payload.billing_address else shipping

    result = await create_order(session, owner_id, shipping, billing, payload.payment_method.value)
    return result_response(result, status_code=status.HTTP_201_CREATED)


@orders_router.get("/orders")
async def list_orders(owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    orders = await get_user_orders(session, owner_id)
    return success_response([o.model_dump() for o in orders])


@orders_router.get("/orders/{order_id}")
async def order_detail(order_id: int, owner_id: str = Depends(require_owner),
                       session: AsyncSession = Depends(get_session)):
    order = await get_order_by_id(session, order_id, owner_id=owner_id)
    return success_response(order.model_dump())


@orders_router.get("/orders/{order_id}/items")
async def order_items(order_id: int, owner_id: str = Depends(require_owner),
                      session: AsyncSession = Depends(get_session)):
    items = await get_order_items(session, order_id, owner_id=owner_id)
    return success_response([it.model_dump() for it in items])


#--------------------------------------------------------------------------------------------------------

orders_admin_router = APIRouter(dependencies=[Depends(require_admin)])


@orders_admin_router.get("")
async def admin_list_orders(status_filter: Optional[OrderStatus] = Query(None, alias="status"),
                            limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
                            session: AsyncSession = Depends(get_session)):
    orders = await get_all_orders(
        session, status=status_filter.value if status_filter else None, limit=limit, offset=offset,
    )
    return success_response([o.model_dump() for o in orders])


@orders_admin_router.patch("/{order_id}/status")
async def admin_set_status(order_id: int, payload: OrderStatusIn, session: AsyncSession = Depends(get_session)):
    result = await update_order_status(session, order_id, payload.status.value)
    return result_response(result)


@orders_admin_router.patch("/{order_id}/payment-status")
async def admin_set_payment_status(order_id: int, payload: PaymentStatusIn,
                                   session: AsyncSession = Depends(get_session)):
    result = await update_payment_status(session, order_id, payload.payment_status.value)
    return result_response(result)
