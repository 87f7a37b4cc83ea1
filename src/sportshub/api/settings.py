"""Settings API — the admin-editable system tunables.

Learn: Settings are one free-form JSON document (system_settings row 1).
No new columns for new tunables — PUT merges whatever keys arrive over
the stored map. Known keys are type-checked by SystemSettingsUpdate;
unknown keys pass through untouched.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.db.engine import get_db
from sportshub.schemas.admin import SystemSettingsUpdate
from sportshub.services.settings_service import SettingsService

router = APIRouter(prefix="/admin/settings")


def _svc(db: AsyncSession = Depends(get_db)) -> SettingsService:
    return SettingsService(db)


@router.get("", response_model=dict[str, Any])
async def get_settings(svc: SettingsService = Depends(_svc)):
    """Current settings (empty object when never saved)."""
    return await svc.get_settings()


@router.put("")
async def update_settings(body: SystemSettingsUpdate, svc: SettingsService = Depends(_svc)):
    """Merge the given keys into the stored settings (upsert)."""
    merged = await svc.update_settings(body.model_dump(exclude_none=True))
    return {"message": "Settings updated successfully!", "settings": merged}
