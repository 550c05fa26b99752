from fastapi import APIRouter, Depends, HTTPException, status

from jobly.core.config import get_settings
from jobly.services.repository import RepositoryError, get_database

router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok", "service": get_settings().app_name}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(database=Depends(get_database)) -> dict[str, str]:
    try:
        async with database.connection() as conn:
            await conn.fetchval("select 1")
    except RepositoryError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"status": "ready"}
