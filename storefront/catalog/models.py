
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class PackPriceOverride(BaseModel):
    pack_size: str
    price: Decimal = Field(..., ge=0)
    sale_price: Optional[Decimal] = Field(None, ge=0)


class ProductSnapshot(BaseModel):
    id: int
    name: str
    price: Decimal
    sale_price: Optional[Decimal] = None
    pack_price_overrides: List[PackPriceOverride] = Field(default_factory=list)
    image: Optional[str] = None
    in_stock: bool = True


class GiftBoxSnapshot(BaseModel):
    id: int
    name: str
    price: Decimal
    image: Optional[str] = None
