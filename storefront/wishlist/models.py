
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class WishlistEntry(BaseModel):
    id: int
    product_id: int
    created_at: datetime
    # None once the product has been withdrawn from the catalog
    name: Optional[str] = None
    price: Optional[Decimal] = None
    image: Optional[str] = None
    in_stock: bool = False
