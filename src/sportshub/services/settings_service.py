"""System settings — one JSON document, merged on write."""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.db.models import SystemSettings

logger = structlog.get_logger()

SETTINGS_ROW_ID = 1


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_settings(self) -> dict[str, Any]:
        """Current tunables; an empty map if nothing was ever saved."""
        row = await self.db.get(SystemSettings, SETTINGS_ROW_ID)
        return dict(row.data) if row is not None else {}

    async def update_settings(self, values: dict[str, Any]) -> dict[str, Any]:
        """Merge `values` over the stored map, creating the row if needed."""
        row = await self.db.get(SystemSettings, SETTINGS_ROW_ID)
        if row is None:
            row = SystemSettings(id=SETTINGS_ROW_ID, data={})
            self.db.add(row)
        # Reassign so the JSON column is seen as changed.
        row.data = {**row.data, **values}
        await self.db.commit()
        logger.info("settings.updated", keys=sorted(values))
        return dict(row.data)
