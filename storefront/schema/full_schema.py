import enum
import uuid
from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint, Uuid
from uuid6 import uuid7
from sqlmodel import Column, SQLModel, Field, Relationship, String
from storefront.common.utils import now

MONEY = Numeric(12, 2)


# Catalog tables are owned by the back office; the cart/order core only reads them.
# Rows are soft deleted so that carts and placed orders keep a valid reference.
class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid, unique=True, index=True, nullable=False)
    )
    name: str = Field(sa_column=Column(String(255), nullable=False))
    slug: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))
    price: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    sale_price: Optional[Decimal] = Field(default=None, sa_column=Column(MONEY, nullable=True))
    pack_sizes: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    # [{"pack_size": "500g", "price": 150, "sale_price": 120}, ...]
    pack_prices: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    image_url: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    in_stock: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


class GiftBox(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    price: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    image_url: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    contents: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


# --------------------------------------------------------------------------------------------
# owner -> cart (1:1), the cart row outlives checkouts, only its lines are cleared
class Cart(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(sa_column=Column(String(64), nullable=False, unique=True, index=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    cart_items: List["CartItem"] = Relationship(back_populates="cart")


# line_key is the canonical identity of a line ("product:<id>:<pack>" / "gift_box:<id>"),
# the unique (cart_id, line_key) pair backs the atomic upsert in add_item_to_cart
class CartItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    cart_id: int = Field(sa_column=Column(Integer, ForeignKey("cart.id", ondelete="CASCADE"), nullable=False, index=True))
    product_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("product.id"), nullable=True, index=True))
    gift_box_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("giftbox.id"), nullable=True, index=True))
    pack_size: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    line_key: str = Field(sa_column=Column(String(160), nullable=False))
    quantity: int = Field(default=1, sa_column=Column(Integer, nullable=False, default=1))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    cart: "Cart" = Relationship(back_populates="cart_items")

    __table_args__ = (
        UniqueConstraint("cart_id", "line_key", name="uq_cart_item_line"),
        CheckConstraint("(product_id IS NULL) <> (gift_box_id IS NULL)", name="ck_cart_item_one_reference"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity_positive"),
    )

# --------------------------------------------------------------------------------------------
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Orders(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid, unique=True, index=True, nullable=False))
    owner_id: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True, index=True))  # null for legacy guest orders
    status: str = Field(default=OrderStatus.PENDING.value, sa_column=Column(String(32), nullable=False, index=True))
    payment_status: str = Field(default=PaymentStatus.PENDING.value, sa_column=Column(String(32), nullable=False))
    total_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(MONEY, nullable=False))
    shipping_address: dict = Field(sa_column=Column(JSON, nullable=False))
    billing_address: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    payment_method: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    order_items: List["OrderItem"] = Relationship(back_populates="order")


# Order --> OrderItems (1:many)
# keeps FKs for traceability but snapshots name/price/pack because the catalog changes over time
class OrderItem(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True))
    product_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("product.id"), nullable=True))
    gift_box_id: Optional[int] = Field(default=None, sa_column=Column(Integer, ForeignKey("giftbox.id"), nullable=True))
    product_name: str = Field(sa_column=Column(String(255), nullable=False))
    price: Decimal = Field(sa_column=Column(MONEY, nullable=False))
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    pack_size: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))

    order: "Orders" = Relationship(back_populates="order_items")

    __table_args__ = (
        CheckConstraint("(product_id IS NULL) <> (gift_box_id IS NULL)", name="ck_order_item_one_reference"),
    )

# --------------------------------------------------------------------------------------------
class WishlistItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    product_id: int = Field(sa_column=Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )
