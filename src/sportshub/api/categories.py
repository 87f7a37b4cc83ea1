"""Admin category routes."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.db.engine import get_db
from sportshub.schemas.admin import CategoryRead, CategoryWrite, CategoryWriteResponse
from sportshub.schemas.common import MessageResponse
from sportshub.services.category_service import CategoryService

router = APIRouter(prefix="/admin/categories")


def _svc(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


@router.get("", response_model=list[CategoryRead])
async def list_categories(svc: CategoryService = Depends(_svc)):
    return await svc.list_categories()


@router.post("", response_model=CategoryWriteResponse, status_code=201)
async def create_category(body: CategoryWrite, svc: CategoryService = Depends(_svc)):
    category = await svc.create_category(body.name, body.icon)
    return CategoryWriteResponse(
        message="Category created successfully!",
        category=CategoryRead.model_validate(category),
    )


@router.put("/{category_id}", response_model=CategoryWriteResponse)
async def update_category(
    category_id: uuid.UUID, body: CategoryWrite, svc: CategoryService = Depends(_svc)
):
    category = await svc.update_category(category_id, body.name, body.icon)
    return CategoryWriteResponse(
        message="Category updated successfully!",
        category=CategoryRead.model_validate(category),
    )


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(category_id: uuid.UUID, svc: CategoryService = Depends(_svc)):
    await svc.delete_category(category_id)
    return MessageResponse(message="Category deleted successfully.")
