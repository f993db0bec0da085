
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field, computed_field
from storefront.cart.constants import MAX_ITEM_QTY, PACK_SIZE_MAX_LEN
from storefront.common.errors import ValidationError


class ProductLine(BaseModel):
    kind: Literal["product"] = "product"
    product_id: int
    pack_size: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def reference_id(self) -> int:
        return self.product_id

    @property
    def line_key(self) -> str:
        return f"product:{self.product_id}:{self.pack_size or ''}"


class GiftBoxLine(BaseModel):
    kind: Literal["gift_box"] = "gift_box"
    gift_box_id: int

    model_config = {"frozen": True}

    @property
    def reference_id(self) -> int:
        return self.gift_box_id

    @property
    def pack_size(self) -> None:
        return None

    @property
    def line_key(self) -> str:
        return f"gift_box:{self.gift_box_id}"


CartLine = Annotated[Union[ProductLine, GiftBoxLine], Field(discriminator="kind")]


def normalize_pack_size(pack_size: Optional[str]) -> Optional[str]:
    if pack_size is None:
        return None
    pack_size = pack_size.strip()
    if not pack_size:
        return None
    if len(pack_size) > PACK_SIZE_MAX_LEN:
        raise ValidationError("pack_size is too long", details={"max_length": PACK_SIZE_MAX_LEN})
    return pack_size


def line_from_refs(product_id: Optional[int], gift_box_id: Optional[int], pack_size: Optional[str] = None):
    """Build the line identity, rejecting the both/neither reference states."""
    if (product_id is None) == (gift_box_id is None):
        raise ValidationError(
            "exactly one of product_id or gift_box_id must be set",
            details={"product_id": product_id, "gift_box_id": gift_box_id},
        )
    pack_size = normalize_pack_size(pack_size)
    if gift_box_id is not None:
        if pack_size is not None:
            raise ValidationError("gift boxes have no pack sizes", details={"gift_box_id": gift_box_id})
        return GiftBoxLine(gift_box_id=gift_box_id)
    return ProductLine(product_id=product_id, pack_size=pack_size)


class AddToCartIn(BaseModel):
    product_id: Optional[int] = None
    gift_box_id: Optional[int] = None
    quantity: int = Field(1, ge=1, le=MAX_ITEM_QTY)
    pack_size: Optional[str] = Field(None, max_length=PACK_SIZE_MAX_LEN)

    model_config = {"extra": "forbid"}


class UpdateQuantityIn(BaseModel):
    quantity: int = Field(..., ge=1, le=MAX_ITEM_QTY)

    model_config = {"extra": "forbid"}


class DisplayItem(BaseModel):
    id: int
    kind: Literal["product", "gift_box"]
    product_id: Optional[int] = None
    gift_box_id: Optional[int] = None
    name: str
    price: Decimal
    original_price: Decimal
    image: Optional[str] = None
    quantity: int
    pack_size: Optional[str] = None
    in_stock: bool = True

    @computed_field
    @property
    def is_gift_box(self) -> bool:
        return self.kind == "gift_box"

    @computed_field
    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class CartRef(BaseModel):
    """Plain copy of a cart row; stays readable after the session rolls back or expires."""

    id: int
    owner_id: str

    model_config = {"frozen": True, "from_attributes": True}


class CartView(BaseModel):
    """Display-ready cart; unresolved_item_ids lists lines whose product/gift box is gone."""

    cart_id: Optional[int] = None
    items: List[DisplayItem] = Field(default_factory=list)
    unresolved_item_ids: List[int] = Field(default_factory=list)

    @computed_field
    @property
    def partial(self) -> bool:
        return bool(self.unresolved_item_ids)

    @computed_field
    @property
    def count(self) -> int:
        return sum(item.quantity for item in self.items)

    @computed_field
    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))


# browser-session scoped cart of anonymous shoppers, sent back as a cookie / request body
class GuestCartItem(BaseModel):
    product_id: Optional[int] = None
    gift_box_id: Optional[int] = None
    pack_size: Optional[str] = None
    quantity: int = Field(..., ge=1)
    id: Optional[Union[int, str]] = None

    model_config = {"extra": "ignore"}


class GuestCart(BaseModel):
    items: List[GuestCartItem] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class MergeReport(BaseModel):
    merged: int = 0
    skipped: List[dict] = Field(default_factory=list)
