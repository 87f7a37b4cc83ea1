"""Category service — the informational sport taxonomy."""

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.db.models import Category
from sportshub.errors import ConflictError, NotFoundError, ValidationError

logger = structlog.get_logger()

DEFAULT_ICON = "🏷️"


class CategoryService:
    """Business logic for categories."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def _save(self, category: Category) -> Category:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Category with this name already exists.", field="name")
        return category

    @staticmethod
    def _clean_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        return name

    async def create_category(self, name: str, icon: Optional[str] = None) -> Category:
        category = Category(name=self._clean_name(name), icon=icon or DEFAULT_ICON)
        self.db.add(category)
        await self._save(category)
        logger.info("categories.created", name=category.name)
        return category

    async def update_category(
        self, category_id: uuid.UUID, name: str, icon: Optional[str] = None
    ) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found.")
        category.name = self._clean_name(name)
        category.icon = icon or DEFAULT_ICON
        await self._save(category)
        logger.info("categories.updated", category_id=str(category_id))
        return category

    async def delete_category(self, category_id: uuid.UUID) -> None:
        result = await self.db.execute(delete(Category).where(Category.id == category_id))
        if result.rowcount == 0:
            raise NotFoundError("Category not found.")
        await self.db.commit()
        logger.info("categories.deleted", category_id=str(category_id))
