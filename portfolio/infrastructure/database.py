import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.dialects.postgresql import insert, JSONB
from sqlalchemy import Table, Column, String, Text, Integer, DateTime, MetaData, delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from portfolio.domain.exceptions import StoreError
from portfolio.domain.models import BlogPost, PostDraft

logger = logging.getLogger(__name__)

# Key of the only row in site_views.
VIEW_COUNTER_ID = "site"

# SQLAlchemy core Table definitions
metadata = MetaData()
posts_table = Table(
    'blog_posts', metadata,
    Column('id', String, primary_key=True),
    Column('title', Text, nullable=False),
    Column('content', Text, nullable=False),
    Column('date', DateTime(timezone=True), nullable=False),
    Column('images', JSONB, nullable=False),
    Column('videos', JSONB, nullable=False),
    Column('tags', JSONB, nullable=False),
)
views_table = Table(
    'site_views', metadata,
    Column('id', String, primary_key=True),
    Column('view_count', Integer, nullable=False),
)


def _row_to_post(row) -> BlogPost:
    return BlogPost(
        id=row.id,
        title=row.title,
        content=row.content,
        date=row.date,
        images=row.images or [],
        videos=row.videos or [],
        tags=row.tags or [],
    )


def increment_views_statement():
    """
    Single-statement upsert: creates the counter at 1 if it is missing,
    otherwise adds one in the database, and returns the new value.
    """
    stmt = insert(views_table).values(id=VIEW_COUNTER_ID, view_count=1)
    return stmt.on_conflict_do_update(
        index_elements=['id'],
        set_={'view_count': views_table.c.view_count + 1},
    ).returning(views_table.c.view_count)


def seed_views_statement():
    stmt = insert(views_table).values(id=VIEW_COUNTER_ID, view_count=0)
    return stmt.on_conflict_do_nothing(index_elements=['id'])


class PostgresBlogStore:
    """
    Repository class for the blog's PostgreSQL tables: the posts collection
    and the singleton view counter. Every SQLAlchemy failure surfaces as a
    StoreError; the original error is only logged.
    """

    def __init__(self, db_url: str):
        self.engine = create_async_engine(db_url, echo=False)

    async def init(self) -> None:
        """
        Creates missing tables and seeds the view counter with 0.
        Raises StoreError when the database is unreachable.
        """
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
                await conn.execute(seed_views_statement())
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize the blog store: {e}")
            raise StoreError()
        logger.info("Blog store initialized.")

    async def close(self) -> None:
        await self.engine.dispose()

    async def list_posts(self) -> List[BlogPost]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(select(posts_table).order_by(posts_table.c.date.desc()))
                return [_row_to_post(row) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list posts: {e}")
            raise StoreError()

    async def get_post(self, post_id: str) -> Optional[BlogPost]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(select(posts_table).where(posts_table.c.id == post_id))
                row = result.first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch post {post_id}: {e}")
            raise StoreError()
        return _row_to_post(row) if row is not None else None

    async def insert_post(self, draft: PostDraft) -> BlogPost:
        """Stores a new post with a fresh id and the current time as its date."""
        post = BlogPost(
            id=uuid.uuid4().hex,
            date=datetime.now(timezone.utc),
            title=draft.title,
            content=draft.content,
            images=draft.images,
            videos=draft.videos,
            tags=draft.tags,
        )
        try:
            async with self.engine.begin() as conn:
                await conn.execute(posts_table.insert().values(**post.model_dump()))
        except SQLAlchemyError as e:
            logger.error(f"Failed to create post: {e}")
            raise StoreError()
        return post

    async def update_post(self, post_id: str, draft: PostDraft) -> Optional[BlogPost]:
        """Overwrites everything but id and date. Returns None when the id is unknown."""
        stmt = (
            update(posts_table)
            .where(posts_table.c.id == post_id)
            .values(
                title=draft.title,
                content=draft.content,
                images=draft.images,
                videos=draft.videos,
                tags=draft.tags,
            )
            .returning(*posts_table.c)
        )
        try:
            async with self.engine.begin() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update post {post_id}: {e}")
            raise StoreError()
        return _row_to_post(row) if row is not None else None

    async def delete_post(self, post_id: str) -> bool:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(delete(posts_table).where(posts_table.c.id == post_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete post {post_id}: {e}")
            raise StoreError()
        return result.rowcount > 0

    async def get_view_count(self) -> int:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(
                    select(views_table.c.view_count).where(views_table.c.id == VIEW_COUNTER_ID)
                )
                count = result.scalar()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read view count: {e}")
            raise StoreError()
        return count if count is not None else 0

    async def increment_view_count(self) -> int:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(increment_views_statement())
                return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Failed to increment view count: {e}")
            raise StoreError()
