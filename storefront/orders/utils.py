
from decimal import ROUND_HALF_UP, Decimal
from storefront.cart.models import CartView
from storefront.config.settings import config_settings

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_checkout_summary(view: CartView):
    """Display totals for the checkout page.

    Shipping and tax are flat figures from settings; the order's total_amount
    stays the plain subtotal.
    """
    subtotal = _money(view.total)
    shipping = _money(config_settings.SHIPPING_FLAT_FEE) if view.items else Decimal("0.00")
    tax = _money(subtotal * config_settings.TAX_FLAT_RATE)
    total = subtotal + shipping + tax

    return {
        "items": [item.model_dump() for item in view.items],
        "unresolved_item_ids": view.unresolved_item_ids,
        "summary": {
            "item_count": view.count,
            "subtotal": subtotal,
            "shipping": shipping,
            "tax": tax,
            "total": total,
        },
    }
