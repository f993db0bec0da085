
from decimal import Decimal
from typing import Iterable, Optional
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from storefront.cart.constants import logger
from storefront.cart.models import CartRef, CartView, DisplayItem, GuestCart, MergeReport, line_from_refs
from storefront.cart.pricing import effective_price, gift_box_price, original_price
from storefront.cart.resolver import resolve_cart_line
from storefront.catalog.repository import fetch_gift_box_snapshots, fetch_product_snapshots
from storefront.common.errors import NotFoundError, PersistenceError, ValidationError
from storefront.common.results import OpResult, as_result, db_read
from storefront.common.utils import now
from storefront.db.utils import dialect_insert
from storefront.schema.full_schema import Cart, CartItem


async def find_cart_id(session, owner_id: str) -> Optional[int]:
    stmt = select(Cart.id).where(Cart.owner_id == owner_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def _find_cart(session, owner_id: str) -> Optional[Cart]:
    res = await session.execute(select(Cart).where(Cart.owner_id == owner_id))
    return res.scalar_one_or_none()


async def get_or_create_cart(session, owner_id: str) -> CartRef:
    """One cart per owner. A failed read is never taken as "no cart".

    Returns a detached CartRef, so a later rollback on the session cannot expire it.
    """
    try:
        cart = await _find_cart(session, owner_id)
    except SQLAlchemyError as exc:
        raise PersistenceError.from_db_error("cart lookup failed", exc) from exc
    if cart is not None:
        return CartRef.model_validate(cart)

    cart = Cart(owner_id=owner_id)
    session.add(cart)
    try:
        await session.commit()
        await session.refresh(cart)
        logger.info("cart.created", extra={"cart_id": cart.id, "owner_id": owner_id})
        return CartRef.model_validate(cart)
    except IntegrityError:
        # a concurrent request created it first, read the winner's row
        await session.rollback()
        try:
            cart = await _find_cart(session, owner_id)
        except SQLAlchemyError as exc:
            raise PersistenceError.from_db_error("cart lookup failed", exc) from exc
        if cart is None:
            raise PersistenceError("cart could not be created", retryable=True)
        return CartRef.model_validate(cart)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError.from_db_error("cart could not be created", exc) from exc


async def _upsert_line(session, cart_id: int, line, quantity: int):
    ts = now()
    ins = dialect_insert(session, CartItem).values(
        cart_id=cart_id,
        product_id=getattr(line, "product_id", None),
        gift_box_id=getattr(line, "gift_box_id", None),
        pack_size=line.pack_size,
        line_key=line.line_key,
        quantity=quantity,
        created_at=ts,
        updated_at=ts,
    )
    ins = ins.on_conflict_do_update(
        index_elements=[CartItem.cart_id, CartItem.line_key],
        set_={"quantity": CartItem.quantity + ins.excluded.quantity, "updated_at": ins.excluded.updated_at},
    ).returning(CartItem.id, CartItem.quantity)
    res = await session.execute(ins)
    return res.one()


@as_result("cart.item.add")
async def add_item_to_cart(session, cart_id: int, product_id: Optional[int] = None, gift_box_id: Optional[int] = None,
                           quantity: int = 1, pack_size: Optional[str] = None):
    line = line_from_refs(product_id, gift_box_id, pack_size)
    if quantity < 1:
        raise ValidationError("quantity must be at least 1", details={"quantity": quantity})

    resolution = await resolve_cart_line(session, cart_id, line, quantity)

    row = None
    if not resolution.is_new:
        # increment in the database, never write back a value read earlier
        upd = (
            update(CartItem)
            .where(CartItem.id == resolution.item_id)
            .values(quantity=CartItem.quantity + quantity, updated_at=now())
            .returning(CartItem.id, CartItem.quantity)
            .execution_options(synchronize_session=False)
        )
        res = await session.execute(upd)
        row = res.one_or_none()
    if row is None:
        # new line, or the matched line was removed in between
        row = await _upsert_line(session, cart_id, line, quantity)

    await session.commit()
    logger.info(
        "cart.item.added",
        extra={"cart_id": cart_id, "item_id": row.id, "line_key": line.line_key, "quantity": row.quantity},
    )
    return {
        "cart_id": cart_id,
        "item": {
            "id": int(row.id),
            "line_key": resolution.line_key,
            "quantity": int(row.quantity),
            "created": resolution.is_new,
        },
    }


def _owner_cart_ids(owner_id: str):
    return select(Cart.id).where(Cart.owner_id == owner_id)


@as_result("cart.item.update")
async def update_item_quantity(session, item_id: int, quantity: int, owner_id: Optional[str] = None):
    # absolute set, last writer wins; the HTTP layer enforces quantity >= 1
    stmt = update(CartItem).where(CartItem.id == item_id)
    if owner_id is not None:
        stmt = stmt.where(CartItem.cart_id.in_(_owner_cart_ids(owner_id)))
    stmt = (
        stmt.values(quantity=quantity, updated_at=now())
        .returning(CartItem.id, CartItem.quantity)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    row = res.one_or_none()
    if row is None:
        raise NotFoundError("cart item not found", details={"item_id": item_id})
    await session.commit()
    logger.info("cart.item.updated", extra={"item_id": item_id, "quantity": quantity})
    return {"id": int(row.id), "quantity": int(row.quantity)}


@as_result("cart.item.remove")
async def remove_cart_item(session, item_id: int, owner_id: Optional[str] = None):
    stmt = delete(CartItem).where(CartItem.id == item_id)
    if owner_id is not None:
        stmt = stmt.where(CartItem.cart_id.in_(_owner_cart_ids(owner_id)))
    res = await session.execute(stmt.execution_options(synchronize_session=False))
    await session.commit()
    removed = res.rowcount > 0
    logger.info("cart.item.removed", extra={"item_id": item_id, "removed": removed})
    return {"id": item_id, "removed": removed}


async def clear_cart(session, cart_id: int, item_ids: Optional[Iterable[int]] = None) -> int:
    """Delete the lines of a cart without committing, so callers can fold it into their transaction.

    With item_ids only those lines go, which lets checkout leave lines added after its snapshot.
    """
    stmt = delete(CartItem).where(CartItem.cart_id == cart_id)
    if item_ids is not None:
        stmt = stmt.where(CartItem.id.in_(list(item_ids)))
    res = await session.execute(stmt.execution_options(synchronize_session=False))
    return res.rowcount


@as_result("cart.clear")
async def clear_owner_cart(session, owner_id: str):
    cart_id = await find_cart_id(session, owner_id)
    if cart_id is None:
        return {"removed": 0}
    removed = await clear_cart(session, cart_id)
    await session.commit()
    logger.info("cart.cleared", extra={"cart_id": cart_id, "removed": removed})
    return {"removed": removed}


@db_read("cart.view")
async def get_cart_items(session, owner_id: str) -> CartView:
    cart_id = await find_cart_id(session, owner_id)
    if cart_id is None:
        return CartView()

    stmt = (
        select(CartItem.id, CartItem.product_id, CartItem.gift_box_id, CartItem.pack_size, CartItem.quantity)
        .where(CartItem.cart_id == cart_id)
        .order_by(CartItem.id)
    )
    res = await session.execute(stmt)
    rows = res.all()

    products = await fetch_product_snapshots(session, [r.product_id for r in rows if r.product_id is not None])
    gift_boxes = await fetch_gift_box_snapshots(session, [r.gift_box_id for r in rows if r.gift_box_id is not None])

    items, unresolved = [], []
    for row in rows:
        if row.gift_box_id is not None:
            box = gift_boxes.get(row.gift_box_id)
            if box is None:
                unresolved.append(row.id)
                continue
            price = gift_box_price(box)
            items.append(DisplayItem(
                id=row.id, kind="gift_box", gift_box_id=box.id, name=box.name,
                price=price, original_price=price, image=box.image, quantity=row.quantity,
            ))
            continue

        product = products.get(row.product_id)
        if product is None:
            unresolved.append(row.id)
            continue
        items.append(DisplayItem(
            id=row.id, kind="product", product_id=product.id, name=product.name,
            price=effective_price(product, row.pack_size),
            original_price=original_price(product, row.pack_size),
            image=product.image, quantity=row.quantity, pack_size=row.pack_size,
            in_stock=product.in_stock,
        ))

    if unresolved:
        logger.warning("cart.view.partial", extra={"cart_id": cart_id, "unresolved_item_ids": unresolved})
    return CartView(cart_id=cart_id, items=items, unresolved_item_ids=unresolved)


async def get_cart_count(session, owner_id: str) -> int:
    view = await get_cart_items(session, owner_id)
    return view.count


async def get_cart_total(session, owner_id: str) -> Decimal:
    view = await get_cart_items(session, owner_id)
    return view.total


async def merge_guest_cart(session, owner_id: str, guest_cart: GuestCart) -> OpResult:
    """Fold an anonymous cart into the owner's cart on login.

    Each guest line goes through the normal add path; lines that fail are
    reported in the MergeReport and do not abort the merge.
    """
    try:
        cart = await get_or_create_cart(session, owner_id)
    except PersistenceError as exc:
        logger.warning("cart.guest.merge.failed", extra={"code": exc.code, "reason": exc.message})
        return OpResult.failure(exc)
    cart_id = cart.id

    report = MergeReport()
    for index, item in enumerate(guest_cart.items):
        result = await add_item_to_cart(
            session, cart_id,
            product_id=item.product_id, gift_box_id=item.gift_box_id,
            quantity=item.quantity, pack_size=item.pack_size,
        )
        if result.ok:
            report.merged += 1
        else:
            report.skipped.append({"index": index, "code": result.error_code, "reason": result.error.message})

    logger.info(
        "cart.guest.merged",
        extra={"cart_id": cart_id, "merged": report.merged, "skipped": len(report.skipped)},
    )
    return OpResult.success(report)
