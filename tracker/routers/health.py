"""Liveness and readiness checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db

router = APIRouter(tags=["health"])

SERVICE = "tracker"


async def _ping(db: AsyncSession) -> str:
    await db.execute(text("SELECT 1"))
    return db.get_bind().dialect.name


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    await _ping(db)
    return {"status": "healthy", "service": SERVICE}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    dialect = await _ping(db)
    return {"status": "ready", "service": SERVICE, "database": dialect}
