import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select, delete, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.models.profile import Profile
from focustube.models.category import ChannelCategory, ChannelCategoryChannel
from focustube.models.channel import ChannelSubscription
from focustube.schemas.category import CategoryWithCount, CategoryResponse

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Work", "/category-images/work.svg"),
    ("Learning", "/category-images/learning.svg"),
    ("Personal", "/category-images/personal.svg"),
    ("Travel", "/category-images/travel.svg"),
    ("Hobby", "/category-images/hobby.svg"),
]


class CategoryService:
    """User-defined channel groups used to filter the feed."""

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Category name cannot be empty"
            )
        return cleaned

    @staticmethod
    async def _ensure_name_free(db: AsyncSession, user: Profile, name: str, exclude_id: Optional[UUID] = None):
        """Names are unique per user, case-insensitively."""
        query = select(ChannelCategory.id).where(
            ChannelCategory.user_id == user.id,
            func.lower(ChannelCategory.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(ChannelCategory.id != exclude_id)
        existing = (await db.execute(query)).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A category with this name already exists"
            )

    @staticmethod
    async def get_owned(db: AsyncSession, user: Profile, category_id: UUID) -> ChannelCategory:
        result = await db.execute(
            select(ChannelCategory).where(
                ChannelCategory.id == category_id,
                ChannelCategory.user_id == user.id,
            )
        )
        category = result.scalar_one_or_none()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )
        return category

    @staticmethod
    async def ensure_default_categories(db: AsyncSession, user: Profile) -> int:
        """Create whichever default categories are missing. Returns how many were created."""
        result = await db.execute(
            select(ChannelCategory.name).where(ChannelCategory.user_id == user.id)
        )
        existing = {name.lower() for name in result.scalars().all()}

        created = 0
        for name, image_url in DEFAULT_CATEGORIES:
            if name.lower() in existing:
                continue
            db.add(ChannelCategory(user_id=user.id, name=name, image_url=image_url))
            created += 1

        if created:
            await db.flush()
            logger.info(f"Created {created} default categories for user {user.id}")
        return created

    @staticmethod
    async def create_category(
        db: AsyncSession,
        user: Profile,
        name: str,
        image_url: Optional[str] = None,
    ) -> ChannelCategory:
        name = CategoryService._clean_name(name)
        await CategoryService._ensure_name_free(db, user, name)

        category = ChannelCategory(user_id=user.id, name=name, image_url=image_url or None)
        db.add(category)
        await db.flush()
        await db.refresh(category)
        return category

    @staticmethod
    async def rename_category(db: AsyncSession, user: Profile, category_id: UUID, new_name: str) -> ChannelCategory:
        name = CategoryService._clean_name(new_name)
        category = await CategoryService.get_owned(db, user, category_id)
        await CategoryService._ensure_name_free(db, user, name, exclude_id=category_id)

        category.name = name
        category.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return category

    @staticmethod
    async def update_category_image(
        db: AsyncSession,
        user: Profile,
        category_id: UUID,
        image_url: Optional[str],
    ) -> ChannelCategory:
        category = await CategoryService.get_owned(db, user, category_id)
        category.image_url = image_url
        category.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return category

    @staticmethod
    async def delete_category(db: AsyncSession, user: Profile, category_id: UUID):
        category = await CategoryService.get_owned(db, user, category_id)
        await db.execute(
            delete(ChannelCategoryChannel).where(ChannelCategoryChannel.category_id == category.id)
        )
        await db.delete(category)
        await db.flush()

    @staticmethod
    async def get_user_categories(db: AsyncSession, user: Profile) -> list[ChannelCategory]:
        result = await db.execute(
            select(ChannelCategory)
            .where(ChannelCategory.user_id == user.id)
            .order_by(ChannelCategory.name.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_categories_with_counts(db: AsyncSession, user: Profile) -> list[CategoryWithCount]:
        categories = await CategoryService.get_user_categories(db, user)

        result = await db.execute(
            select(ChannelCategoryChannel.category_id, func.count(ChannelCategoryChannel.id))
            .where(ChannelCategoryChannel.user_id == user.id)
            .group_by(ChannelCategoryChannel.category_id)
        )
        counts = {category_id: count for category_id, count in result.all()}

        return [
            CategoryWithCount(
                **CategoryResponse.model_validate(c).model_dump(),
                channel_count=counts.get(c.id, 0),
            )
            for c in categories
        ]

    @staticmethod
    async def set_channel_categories(
        db: AsyncSession,
        user: Profile,
        channel_id: str,
        category_ids: list[UUID],
    ) -> list[UUID]:
        """Replace the channel's category assignments with `category_ids`."""
        subscription = await db.execute(
            select(ChannelSubscription.id).where(
                ChannelSubscription.user_id == user.id,
                ChannelSubscription.channel_id == channel_id,
            )
        )
        if not subscription.first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Channel not found in your subscriptions"
            )

        # Only the user's own categories can be assigned
        wanted = list(dict.fromkeys(category_ids))
        if wanted:
            owned = await db.execute(
                select(ChannelCategory.id).where(
                    ChannelCategory.user_id == user.id,
                    ChannelCategory.id.in_(wanted),
                )
            )
            owned_ids = set(owned.scalars().all())
            unknown = [cid for cid in wanted if cid not in owned_ids]
            if unknown:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Category not found"
                )

        await db.execute(
            delete(ChannelCategoryChannel).where(
                ChannelCategoryChannel.user_id == user.id,
                ChannelCategoryChannel.channel_id == channel_id,
            )
        )
        for category_id in wanted:
            db.add(ChannelCategoryChannel(user_id=user.id, category_id=category_id, channel_id=channel_id))
        await db.flush()
        return wanted

    @staticmethod
    async def get_channel_categories(db: AsyncSession, user: Profile, channel_id: str) -> list[UUID]:
        result = await db.execute(
            select(ChannelCategoryChannel.category_id).where(
                and_(
                    ChannelCategoryChannel.user_id == user.id,
                    ChannelCategoryChannel.channel_id == channel_id,
                )
            )
        )
        return result.scalars().all()

    @staticmethod
    async def get_channels_in_category(db: AsyncSession, user: Profile, category_id: UUID) -> list[str]:
        result = await db.execute(
            select(ChannelCategoryChannel.channel_id).where(
                and_(
                    ChannelCategoryChannel.user_id == user.id,
                    ChannelCategoryChannel.category_id == category_id,
                )
            )
        )
        return result.scalars().all()
