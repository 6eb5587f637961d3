# storefront/activity.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .deps import require_admin
from .models import User
from .schemas import ActivityLogOut
from . import crud

router = APIRouter(prefix="/activity-logs", tags=["activity"])

@router.get("")
async def list_activity_logs(entity_type: Optional[str] = None,
                             limit: int = Query(100, ge=1, le=1000),
                             user: User = Depends(require_admin),
                             db: AsyncSession = Depends(get_db)):
    rows = await crud.get_activity_logs(db, entity_type=entity_type, limit=limit)
    return {"logs": [ActivityLogOut.model_validate(r).model_dump(by_alias=True) for r in rows]}
