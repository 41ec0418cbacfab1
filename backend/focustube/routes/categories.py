from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.database import get_db
from focustube.models.profile import Profile
from focustube.schemas.category import (
    CategoryCreate,
    CategoryRename,
    CategoryImageUpdate,
    CategoryResponse,
    CategoryWithCount,
)
from focustube.security import get_current_user
from focustube.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """The user's categories ordered by name."""
    return await CategoryService.get_user_categories(db, current_user)


@router.get("/with-counts", response_model=list[CategoryWithCount])
async def list_categories_with_counts(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await CategoryService.get_categories_with_counts(db, current_user)


@router.post("/defaults")
async def ensure_default_categories(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Create the built-in categories the user does not have yet. Safe to call repeatedly."""
    created = await CategoryService.ensure_default_categories(db, current_user)
    return {"created": created}


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await CategoryService.create_category(db, current_user, data.name, data.image_url)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def rename_category(
    category_id: UUID,
    data: CategoryRename,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await CategoryService.rename_category(db, current_user, category_id, data.name)


@router.put("/{category_id}/image", response_model=CategoryResponse)
async def update_category_image(
    category_id: UUID,
    data: CategoryImageUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await CategoryService.update_category_image(db, current_user, category_id, data.image_url)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Delete a category. Its channels stay subscribed and become uncategorized."""
    await CategoryService.delete_category(db, current_user, category_id)


@router.get("/{category_id}/channels", response_model=list[str])
async def list_category_channels(
    category_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    await CategoryService.get_owned(db, current_user, category_id)
    return await CategoryService.get_channels_in_category(db, current_user, category_id)
