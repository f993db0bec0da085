
from typing import Dict, Iterable, Optional
from sqlalchemy import select
from storefront.catalog.constants import logger
from storefront.catalog.models import GiftBoxSnapshot, PackPriceOverride, ProductSnapshot
from storefront.schema.full_schema import GiftBox, Product


def _product_snapshot(row) -> ProductSnapshot:
    overrides = []
    for entry in row.pack_prices or []:
        try:
            overrides.append(PackPriceOverride.model_validate(entry))
        except ValueError:
            # a malformed override is ignored, the product falls back to its top-level prices
            logger.warning("catalog.pack_price.invalid", extra={"product_id": row.id, "entry": entry})
    return ProductSnapshot(
        id=row.id,
        name=row.name,
        price=row.price,
        sale_price=row.sale_price,
        pack_price_overrides=overrides,
        image=row.image_url,
        in_stock=row.in_stock,
    )


def _gift_box_snapshot(row) -> GiftBoxSnapshot:
    return GiftBoxSnapshot(id=row.id, name=row.name, price=row.price, image=row.image_url)


def _product_stmt():
    return select(
        Product.id, Product.name, Product.price, Product.sale_price,
        Product.pack_prices, Product.image_url, Product.in_stock,
    ).where(Product.deleted_at.is_(None))


def _gift_box_stmt():
    return select(GiftBox.id, GiftBox.name, GiftBox.price, GiftBox.image_url).where(GiftBox.deleted_at.is_(None))


async def fetch_product_snapshot(session, product_id: int) -> Optional[ProductSnapshot]:
    res = await session.execute(_product_stmt().where(Product.id == product_id))
    row = res.one_or_none()
    if row is None:
        return None
    return _product_snapshot(row)


async def fetch_gift_box_snapshot(session, gift_box_id: int) -> Optional[GiftBoxSnapshot]:
    res = await session.execute(_gift_box_stmt().where(GiftBox.id == gift_box_id))
    row = res.one_or_none()
    if row is None:
        return None
    return _gift_box_snapshot(row)


async def fetch_product_snapshots(session, product_ids: Iterable[int]) -> Dict[int, ProductSnapshot]:
    ids = set(product_ids)
    if not ids:
        return {}
    res = await session.execute(_product_stmt().where(Product.id.in_(ids)))
    return {row.id: _product_snapshot(row) for row in res.all()}


async def fetch_gift_box_snapshots(session, gift_box_ids: Iterable[int]) -> Dict[int, GiftBoxSnapshot]:
    ids = set(gift_box_ids)
    if not ids:
        return {}
    res = await session.execute(_gift_box_stmt().where(GiftBox.id.in_(ids)))
    return {row.id: _gift_box_snapshot(row) for row in res.all()}
