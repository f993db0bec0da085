
from typing import Any, Optional
from urllib.parse import unquote
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from storefront.cart.constants import logger
from storefront.cart.models import GuestCart
from storefront.schema.full_schema import Cart, CartItem, GiftBox, Product


def parse_guest_cart(raw: Any) -> Optional[GuestCart]:
    """Guest cart as sent by the browser (cookie string, bytes or decoded dict). None when unusable."""
    if raw is None or raw == "" or raw == b"":
        return None
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = raw.strip()
            if not raw.startswith("{"):
                # cookie values arrive percent-encoded
                raw = unquote(raw)
            return GuestCart.model_validate_json(raw)
        return GuestCart.model_validate(raw)
    except (PydanticValidationError, UnicodeDecodeError):
        logger.debug("cart.guest.malformed")
        return None


def guest_cart_count(raw: Any) -> int:
    guest = parse_guest_cart(raw)
    if guest is None:
        return 0
    return sum(item.quantity for item in guest.items)


async def owner_cart_count(session, owner_id: str) -> int:
    # only lines whose product / gift box still resolves, same figure as the cart view
    stmt = (
        select(func.coalesce(func.sum(CartItem.quantity), 0))
        .select_from(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .outerjoin(Product, and_(Product.id == CartItem.product_id, Product.deleted_at.is_(None)))
        .outerjoin(GiftBox, and_(GiftBox.id == CartItem.gift_box_id, GiftBox.deleted_at.is_(None)))
        .where(Cart.owner_id == owner_id, or_(Product.id.is_not(None), GiftBox.id.is_not(None)))
    )
    res = await session.execute(stmt)
    return int(res.scalar_one() or 0)


async def cart_count(session, owner_id: Optional[str], guest_cart_raw: Any = None) -> int:
    """Badge count, always >= 0. Never creates a cart and never raises."""
    if owner_id is None:
        return guest_cart_count(guest_cart_raw)
    try:
        return await owner_cart_count(session, owner_id)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("cart.count.db_error", extra={"reason": type(exc).__name__}, exc_info=exc)
        return 0
