
from decimal import Decimal
from typing import Optional
from storefront.catalog.models import GiftBoxSnapshot, ProductSnapshot


def _pack_override(snapshot: ProductSnapshot, pack_size: Optional[str]):
    if not pack_size:
        return None
    for override in snapshot.pack_price_overrides:
        if override.pack_size == pack_size:
            return override
    return None


def effective_price(snapshot: ProductSnapshot, pack_size: Optional[str] = None) -> Decimal:
    """Unit price of a product line.

    Tiers, first present wins:
      1. override for the selected pack size (its sale_price, else its price)
      2. product sale_price
      3. product price
    A zero sale price is still a sale price; only None counts as absent.
    """
    override = _pack_override(snapshot, pack_size)
    if override is not None:
        return override.sale_price if override.sale_price is not None else override.price
    if snapshot.sale_price is not None:
        return snapshot.sale_price
    return snapshot.price


def original_price(snapshot: ProductSnapshot, pack_size: Optional[str] = None) -> Decimal:
    # struck-through price shown next to a sale price
    override = _pack_override(snapshot, pack_size)
    if override is not None:
        return override.price
    return snapshot.price


def gift_box_price(snapshot: GiftBoxSnapshot) -> Decimal:
    return snapshot.price
