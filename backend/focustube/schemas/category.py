from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    image_url: Optional[str] = None


class CategoryRename(BaseModel):
    name: str = Field(..., max_length=100)


class CategoryImageUpdate(BaseModel):
    image_url: Optional[str] = None


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryWithCount(CategoryResponse):
    channel_count: int = 0


class ChannelCategoriesUpdate(BaseModel):
    category_ids: list[UUID] = Field(default_factory=list)


class ExtensionCategory(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True
