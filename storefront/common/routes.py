from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.common import logger
from storefront.db.dependencies import get_session

home_router = APIRouter()


@home_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    stmt = select(1)

    try:
        await session.execute(stmt)
    except SQLAlchemyError as e:
        logger.error("health.db_unreachable", extra={"reason": type(e).__name__})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error")

    return {"status": "healthy"}
