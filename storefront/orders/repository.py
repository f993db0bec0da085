
from typing import List, Optional
from sqlalchemy import select, update
from storefront.cart.repository import clear_cart, get_cart_items
from storefront.common.errors import EmptyCartError, NotFoundError, ValidationError
from storefront.common.results import as_result, db_read
from storefront.common.utils import now
from storefront.orders.constants import logger
from storefront.orders.models import OrderItemOut, OrderOut
from storefront.schema.full_schema import OrderItem, OrderStatus, Orders, PaymentStatus


def _order_out(order: Orders, items: Optional[List[OrderItem]] = None) -> OrderOut:
    out = OrderOut.model_validate(order)
    if items is not None:
        out.items = [OrderItemOut.model_validate(it) for it in items]
    return out


async def insert_order_items(session, order_id: int, cart_items) -> List[OrderItem]:
    # name / price / pack are frozen here, later catalog edits never reach a placed order
    rows = [
        OrderItem(
            order_id=order_id,
            product_id=it.product_id if it.kind == "product" else None,
            gift_box_id=it.gift_box_id if it.kind == "gift_box" else None,
            product_name=it.name,
            price=it.price,
            quantity=it.quantity,
            pack_size=it.pack_size,
        )
        for it in cart_items
    ]
    session.add_all(rows)
    await session.flush()
    return rows


@as_result("order.create")
async def create_order(session, owner_id: str, shipping_address: dict, billing_address: Optional[dict] = None,
                       payment_method: Optional[str] = None) -> OrderOut:
    """Turn the owner's cart into an order.

    Order row, its items and the removal of the consumed cart lines share one
    transaction: either all of it lands or none of it does.
    """
    view = await get_cart_items(session, owner_id)
    if view.partial:
        raise NotFoundError(
            "cart has lines whose product or gift box no longer exists",
            details={"item_ids": view.unresolved_item_ids},
        )
    if not view.items:
        raise EmptyCartError("cart is empty")

    order = Orders(
        owner_id=owner_id,
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        total_amount=view.total,
        shipping_address=shipping_address,
        billing_address=billing_address,
        payment_method=payment_method,
    )
    session.add(order)
    await session.flush()  # to get order.id

    items = await insert_order_items(session, order.id, view.items)

    # only the snapshotted lines, anything added meanwhile stays in the cart
    await clear_cart(session, view.cart_id, [it.id for it in view.items])

    await session.commit()
    logger.info(
        "order.created",
        extra={
            "order_id": order.id,
            "order_public_id": str(order.public_id),
            "owner_id": owner_id,
            "total_amount": str(order.total_amount),
            "item_count": len(items),
        },
    )
    return _order_out(order, items)


@db_read("order.list")
async def get_user_orders(session, owner_id: str) -> List[OrderOut]:
    stmt = select(Orders).where(Orders.owner_id == owner_id).order_by(Orders.created_at.desc(), Orders.id.desc())
    res = await session.execute(stmt)
    return [_order_out(o) for o in res.scalars().all()]


async def _load_order(session, order_id: int, owner_id: Optional[str] = None) -> Orders:
    stmt = select(Orders).where(Orders.id == order_id)
    if owner_id is not None:
        stmt = stmt.where(Orders.owner_id == owner_id)
    res = await session.execute(stmt)
    order = res.scalar_one_or_none()
    if order is None:
        # another owner's order is reported the same as a missing one
        raise NotFoundError("order not found", details={"order_id": order_id})
    return order


async def _load_items(session, order_id: int) -> List[OrderItem]:
    res = await session.execute(select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id))
    return list(res.scalars().all())


@db_read("order.get")
async def get_order_by_id(session, order_id: int, owner_id: Optional[str] = None) -> OrderOut:
    order = await _load_order(session, order_id, owner_id)
    items = await _load_items(session, order.id)
    return _order_out(order, items)


@db_read("order.items")
async def get_order_items(session, order_id: int, owner_id: Optional[str] = None) -> List[OrderItemOut]:
    await _load_order(session, order_id, owner_id)
    return [OrderItemOut.model_validate(it) for it in await _load_items(session, order_id)]


@db_read("order.admin.list")
async def get_all_orders(session, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[OrderOut]:
    stmt = select(Orders)
    if status is not None:
        stmt = stmt.where(Orders.status == status)
    stmt = stmt.order_by(Orders.created_at.desc(), Orders.id.desc()).limit(limit).offset(offset)
    res = await session.execute(stmt)
    return [_order_out(o) for o in res.scalars().all()]


async def _set_order_field(session, order_id: int, **values) -> OrderOut:
    stmt = (
        update(Orders)
        .where(Orders.id == order_id)
        .values(updated_at=now(), **values)
        .returning(Orders.id)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    if res.scalar_one_or_none() is None:
        raise NotFoundError("order not found", details={"order_id": order_id})
    await session.commit()
    order = await _load_order(session, order_id)
    await session.refresh(order)
    return _order_out(order)


@as_result("order.status.update")
async def update_order_status(session, order_id: int, status: str) -> OrderOut:
    try:
        status = OrderStatus(status).value
    except ValueError:
        raise ValidationError("unknown order status", details={"status": status,
                                                                "allowed": [s.value for s in OrderStatus]})
    out = await _set_order_field(session, order_id, status=status)
    logger.info("order.status.updated", extra={"order_id": order_id, "status": status})
    return out


@as_result("order.payment_status.update")
async def update_payment_status(session, order_id: int, payment_status: str) -> OrderOut:
    try:
        payment_status = PaymentStatus(payment_status).value
    except ValueError:
        raise ValidationError("unknown payment status", details={"payment_status": payment_status,
                                                                  "allowed": [s.value for s in PaymentStatus]})
    out = await _set_order_field(session, order_id, payment_status=payment_status)
    logger.info("order.payment_status.updated", extra={"order_id": order_id, "payment_status": payment_status})
    return out
