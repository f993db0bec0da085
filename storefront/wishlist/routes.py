
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.common.utils import result_response, success_response
from storefront.db.dependencies import get_session
from storefront.user.dependencies import require_owner
from storefront.wishlist.repository import add_to_wishlist, get_user_wishlist, is_in_wishlist, remove_from_wishlist

wishlist_router = APIRouter()


@wishlist_router.get("")
async def list_wishlist(owner_id: str = Depends(require_owner), session: AsyncSession = Depends(get_session)):
    entries = await get_user_wishlist(session, owner_id)
    return success_response([e.model_dump() for e in entries])


@wishlist_router.get("/{product_id}")
async def wishlist_membership(product_id: int, owner_id: str = Depends(require_owner),
                              session: AsyncSession = Depends(get_session)):
    in_wishlist = await is_in_wishlist(session, owner_id, product_id)
    return success_response({"product_id": product_id, "in_wishlist": in_wishlist})


@wishlist_router.post("/{product_id}")
async def add_wishlist_item(product_id: int, owner_id: str = Depends(require_owner),
                            session: AsyncSession = Depends(get_session)):
    result = await add_to_wishlist(session, owner_id, product_id)
    return result_response(result, status_code=status.HTTP_201_CREATED)


@wishlist_router.delete("/{product_id}")
async def remove_wishlist_item(product_id: int, owner_id: str = Depends(require_owner),
                               session: AsyncSession = Depends(get_session)):
    result = await remove_from_wishlist(session, owner_id, product_id)
    return result_response(result)
