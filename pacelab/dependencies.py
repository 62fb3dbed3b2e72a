"""FastAPI dependencies for accessing application state."""

from typing import AsyncIterator, cast

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pacelab.config import get_settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=True)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Get database session from application state.

    Usage:
        @router.get("/activities/{activity_id}")
        async def get_activity(activity_id: int, db: AsyncSession = Depends(get_session)):
            ...
    """
    session_maker = cast(async_sessionmaker, request.state.session_maker)
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def verify_admin_api_key(api_key: str = Security(api_key_header)) -> None:
    """
    Verify admin API key from X-API-Key header.

    Every router except ``/health`` is mounted behind this dependency:
        router = APIRouter(prefix="/sync", dependencies=[Depends(verify_admin_api_key)])

    Raises
    ------
    HTTPException
        403 if API key is invalid or missing
    """
    settings = get_settings()
    if api_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid API key")
