
from dataclasses import dataclass
from typing import Optional, Union
from sqlalchemy import select
from storefront.cart.models import GiftBoxLine, ProductLine
from storefront.catalog.repository import fetch_gift_box_snapshot, fetch_product_snapshot
from storefront.common.errors import NotFoundError, ValidationError
from storefront.schema.full_schema import CartItem


@dataclass(frozen=True)
class LineResolution:
    """Where an add lands: an existing line (item_id set) or a new one."""

    item_id: Optional[int]
    line_key: str
    quantity: int

    @property
    def is_new(self) -> bool:
        return self.item_id is None


async def ensure_reference_exists(session, line: Union[ProductLine, GiftBoxLine]) -> None:
    if isinstance(line, GiftBoxLine):
        snapshot = await fetch_gift_box_snapshot(session, line.gift_box_id)
        if snapshot is None:
            raise NotFoundError("gift box not found", details={"gift_box_id": line.gift_box_id})
        return
    snapshot = await fetch_product_snapshot(session, line.product_id)
    if snapshot is None:
        raise NotFoundError("product not found", details={"product_id": line.product_id})


async def resolve_cart_line(session, cart_id: int, line: Union[ProductLine, GiftBoxLine], quantity: int) -> LineResolution:
    if quantity < 1:
        raise ValidationError("quantity must be at least 1", details={"quantity": quantity})

    # catalog check happens before anything is written
    await ensure_reference_exists(session, line)

    stmt = select(CartItem.id, CartItem.line_key, CartItem.quantity).where(CartItem.cart_id == cart_id)
    if isinstance(line, GiftBoxLine):
        stmt = stmt.where(CartItem.gift_box_id == line.gift_box_id)
    else:
        stmt = stmt.where(CartItem.product_id == line.product_id)
        # without a pack size the first line of the product is the match
        if line.pack_size is not None:
            stmt = stmt.where(CartItem.pack_size == line.pack_size)
    stmt = stmt.order_by(CartItem.id).limit(1)

    res = await session.execute(stmt)
    row = res.one_or_none()
    if row is None:
        return LineResolution(item_id=None, line_key=line.line_key, quantity=quantity)
    return LineResolution(item_id=row.id, line_key=row.line_key, quantity=row.quantity + quantity)
