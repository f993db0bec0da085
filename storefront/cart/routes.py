
from typing import Optional
from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.cart.constants import GUEST_CART_COOKIE
from storefront.cart.count import cart_count, parse_guest_cart
from storefront.cart.models import AddToCartIn, GuestCart, UpdateQuantityIn
from storefront.cart.repository import (
    add_item_to_cart, clear_owner_cart, get_cart_items, get_or_create_cart,
    merge_guest_cart, remove_cart_item, update_item_quantity,
)
from storefront.common.utils import result_response, success_response
from storefront.db.dependencies import get_session
from storefront.orders.utils import compute_checkout_summary
from storefront.user.dependencies import current_owner, require_owner

carts_router = APIRouter()


@carts_router.get("")
async def view_cart(owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    view = await get_cart_items(session, owner_id)
    return success_response(view.model_dump())


@carts_router.post("/items")
async def add_to_cart(payload: AddToCartIn, owner_id: str = Depends(require_owner),
                      session: AsyncSession = Depends(get_session)):

    cart = await get_or_create_cart(session, owner_id)

    result = await add_item_to_cart(
        session, cart.id,
        product_id=payload.product_id,
        gift_box_id=payload.gift_box_id,
        quantity=payload.quantity,
        pack_size=payload.pack_size,
    )
    return result_response(result, status_code=status.HTTP_201_CREATED)


@carts_router.patch("/items/{item_id}")
async def change_quantity(item_id: int, payload: UpdateQuantityIn, owner_id: str = Depends(require_owner),
                          session: AsyncSession = Depends(get_session)):
    result = await update_item_quantity(session, item_id, payload.quantity, owner_id=owner_id)
    return result_response(result)


@carts_router.delete("/items/{item_id}")
async def delete_item(item_id: int, owner_id: str = Depends(require_owner),
                      session: AsyncSession = Depends(get_session)):
    result = await remove_cart_item(session, item_id, owner_id=owner_id)
    return result_response(result)


@carts_router.delete("")
async def clear_cart_route(owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    result = await clear_owner_cart(session, owner_id)
    return result_response(result)


# header badge; anonymous shoppers are counted from the guest cart cookie
@carts_router.get("/count")
async def badge_count(request: Request, owner_id: Optional[str] = Depends(current_owner),
                      session: AsyncSession = Depends(get_session)):
    count = await cart_count(session, owner_id, request.cookies.get(GUEST_CART_COOKIE))
    return success_response({"count": count})


@carts_router.get("/total")
async def cart_total(owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    view = await get_cart_items(session, owner_id)
    return success_response({"total": view.total, "partial": view.partial})


@carts_router.get("/summary")
async def checkout_summary(owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    view = await get_cart_items(session, owner_id)
    return success_response(compute_checkout_summary(view))


@carts_router.post("/merge-guest")
async def merge_guest(request: Request, guest_cart: Optional[GuestCart] = Body(None),
                      owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    # body wins over the cookie, a malformed cookie merges nothing
    if guest_cart is None:
        guest_cart = parse_guest_cart(request.cookies.get(GUEST_CART_COOKIE)) or GuestCart()

    result = await merge_guest_cart(session, owner_id, guest_cart)
    response = result_response(result)
    if result.ok:
        response.delete_cookie(GUEST_CART_COOKIE, path="/")
    return response
