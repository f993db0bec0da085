
from typing import List
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from storefront.cart.pricing import effective_price
from storefront.catalog.repository import fetch_product_snapshot, fetch_product_snapshots
from storefront.common.errors import NotFoundError
from storefront.common.results import as_result, db_read
from storefront.common.utils import now
from storefront.db.utils import dialect_insert
from storefront.schema.full_schema import WishlistItem
from storefront.wishlist.constants import logger
from storefront.wishlist.models import WishlistEntry


@as_result("wishlist.add")
async def add_to_wishlist(session, user_id: str, product_id: int):
    if await fetch_product_snapshot(session, product_id) is None:
        raise NotFoundError("product not found", details={"product_id": product_id})

    stmt = (
        dialect_insert(session, WishlistItem)
        .values(user_id=user_id, product_id=product_id, created_at=now())
        .on_conflict_do_nothing(index_elements=[WishlistItem.user_id, WishlistItem.product_id])
        .returning(WishlistItem.id)
    )
    res = await session.execute(stmt)
    created = res.scalar_one_or_none() is not None
    await session.commit()
    logger.info("wishlist.added", extra={"user_id": user_id, "product_id": product_id, "inserted": created})
    return {"product_id": product_id, "created": created}


@as_result("wishlist.remove")
async def remove_from_wishlist(session, user_id: str, product_id: int):
    stmt = delete(WishlistItem).where(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
    res = await session.execute(stmt.execution_options(synchronize_session=False))
    await session.commit()
    return {"product_id": product_id, "removed": res.rowcount > 0}


async def is_in_wishlist(session, user_id: str, product_id: int) -> bool:
    """Membership check for the product page heart icon.

    A missing row and a failed lookup both read as False; only the latter is logged.
    """
    stmt = select(WishlistItem.id).where(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
    try:
        res = await session.execute(stmt)
        return res.scalar_one_or_none() is not None
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error(
            "wishlist.lookup.db_error",
            extra={"user_id": user_id, "product_id": product_id, "reason": type(exc).__name__},
            exc_info=exc,
        )
        return False


@db_read("wishlist.list")
async def get_user_wishlist(session, user_id: str) -> List[WishlistEntry]:
    stmt = (
        select(WishlistItem.id, WishlistItem.product_id, WishlistItem.created_at)
        .where(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
    )
    res = await session.execute(stmt)
    rows = res.all()
    products = await fetch_product_snapshots(session, [r.product_id for r in rows])

    entries = []
    for row in rows:
        entry = WishlistEntry(id=row.id, product_id=row.product_id, created_at=row.created_at)
        product = products.get(row.product_id)
        if product is not None:
            entry.name = product.name
            entry.price = effective_price(product)
            entry.image = product.image
            entry.in_stock = product.in_stock
        entries.append(entry)
    return entries
