"""Database-backed store with the same interface as `store.MemoryStore`."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, sessionmaker

import models
from database import Base, create_db_engine, create_session_factory
from logging_config import mask_password
from store import Article, User, UsernameTakenError, utcnow

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands DateTime columns back without tzinfo; they are stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_record(row: models.User) -> User:
    return User(
        id=row.id,
        username=row.username,
        password=row.password,
        email=row.email or "",
        nickname=row.nickname or "",
        avatar=row.avatar or "",
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _article_record(row: models.Article) -> Article:
    return Article(
        id=row.id,
        title=row.title,
        content=row.content,
        slug=row.slug or "",
        category=row.category or "",
        tags=row.tags or "",
        status=row.status,
        views=row.views or 0,
        user_id=row.user_id,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        user=_user_record(row.owner) if row.owner is not None else None,
    )


class SqlStore:
    def __init__(self, session_factory: sessionmaker, clock: Callable = utcnow) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @classmethod
    def from_url(cls, database_url: str, clock: Callable = utcnow) -> "SqlStore":
        logger.info("Connecting to database %s", mask_password(database_url))
        engine = create_db_engine(database_url)
        Base.metadata.create_all(bind=engine)
        return cls(create_session_factory(engine), clock=clock)

    def list_articles(self, limit: int, offset: int, status: str = "") -> List[Article]:
        if limit <= 0 or offset < 0:
            return []
        with self._session_factory() as db:
            query = db.query(models.Article).options(joinedload(models.Article.owner))
            if status:
                query = query.filter(models.Article.status == status)
            rows = (
                query.order_by(models.Article.created_at.desc(), models.Article.id.desc())
                .limit(limit)
                .offset(offset)
                .all()
            )
            return [_article_record(row) for row in rows]

    def get_article(self, article_id: int) -> Optional[Article]:
        with self._session_factory() as db:
            row = (
                db.query(models.Article)
                .options(joinedload(models.Article.owner))
                .filter(models.Article.id == article_id)
                .first()
            )
            return _article_record(row) if row is not None else None

    def create_article(self, article: Article) -> Article:
        now = self._clock()
        with self._session_factory() as db:
            row = models.Article(
                title=article.title,
                content=article.content,
                slug=article.slug,
                category=article.category,
                tags=article.tags,
                status=article.status,
                views=article.views,
                user_id=article.user_id,
                created_at=now,
                updated_at=now,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            article.id = row.id
        article.created_at = now
        article.updated_at = now
        logger.debug("Created article id=%s", article.id)
        return article

    def update_article(self, article: Article) -> None:
        with self._session_factory() as db:
            row = db.get(models.Article, article.id)
            if row is None:
                return
            row.title = article.title
            row.content = article.content
            row.slug = article.slug
            row.category = article.category
            row.tags = article.tags
            row.status = article.status
            row.user_id = article.user_id
            row.updated_at = self._clock()
            db.commit()
            article.created_at = _aware(row.created_at)
            article.updated_at = _aware(row.updated_at)
            article.views = row.views
        logger.debug("Updated article id=%s", article.id)

    def delete_article(self, article_id: int) -> None:
        with self._session_factory() as db:
            db.query(models.Article).filter(models.Article.id == article_id).delete()
            db.commit()

    def increase_article_views(self, article_id: int) -> None:
        with self._session_factory() as db:
            db.query(models.Article).filter(models.Article.id == article_id).update(
                {models.Article.views: models.Article.views + 1}, synchronize_session=False
            )
            db.commit()

    def list_users(self, limit: Optional[int] = None, offset: int = 0) -> List[User]:
        with self._session_factory() as db:
            query = db.query(models.User).order_by(models.User.id.asc()).offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return [_user_record(row) for row in query.all()]

    def get_user(self, user_id: int) -> Optional[User]:
        with self._session_factory() as db:
            row = db.get(models.User, user_id)
            return _user_record(row) if row is not None else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session_factory() as db:
            row = db.query(models.User).filter(models.User.username == username).first()
            return _user_record(row) if row is not None else None

    def create_user(self, user: User) -> User:
        now = self._clock()
        with self._session_factory() as db:
            if db.query(models.User).filter(models.User.username == user.username).first():
                raise UsernameTakenError(user.username)
            row = models.User(
                username=user.username,
                password=user.password,
                email=user.email,
                nickname=user.nickname,
                avatar=user.avatar,
                created_at=user.created_at or now,
                updated_at=user.updated_at or now,
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError as exc:
                # lost a race with a concurrent insert of the same username
                db.rollback()
                raise UsernameTakenError(user.username) from exc
            user.id = row.id
        if user.created_at is None:
            user.created_at = now
        if user.updated_at is None:
            user.updated_at = now
        logger.debug("Created user id=%s username=%s", user.id, user.username)
        return user

    def count_users(self) -> int:
        with self._session_factory() as db:
            return db.query(models.User).count()
