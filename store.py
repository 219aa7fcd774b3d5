"""In-memory stand-in for the relational database.

`MemoryStore` keeps articles and users in dicts keyed by id and guards both
behind a single reader/writer lock. Reads hand out deep copies, so callers
can mutate what they get back without touching stored state.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    username: str
    password: str = ""  # bcrypt hash
    email: str = ""
    nickname: str = ""
    avatar: str = ""
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Article:
    title: str
    content: str
    user_id: int = 0
    slug: str = ""
    category: str = ""
    tags: str = ""
    status: str = STATUS_DRAFT
    views: int = 0
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # owner snapshot, filled in on read only
    user: Optional[User] = None


class StoreError(Exception):
    pass


class UsernameTakenError(StoreError):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"Username already exists: {username!r}")


class RWLock:
    """Reader/writer lock that lets waiting writers go before new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MemoryStore:
    """Articles and users held in process memory.

    Identifiers come from per-collection counters that only ever go up, so an
    id freed by a delete is never handed out again. Every read returns copies
    and every write stores a copy of what it was given.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = RWLock()
        self._articles: Dict[int, Article] = {}
        self._users: Dict[int, User] = {}
        self._last_article_id = 0
        self._last_user_id = 0

    # articles

    def list_articles(self, limit: int, offset: int, status: str = "") -> List[Article]:
        if limit <= 0 or offset < 0:
            return []
        with self._lock.read_locked():
            matches = [a for a in self._articles.values() if not status or a.status == status]
            matches.sort(key=lambda a: (a.created_at, a.id), reverse=True)
            return [self._hydrate(a) for a in matches[offset:offset + limit]]

    def get_article(self, article_id: int) -> Optional[Article]:
        with self._lock.read_locked():
            article = self._articles.get(article_id)
            if article is None:
                return None
            return self._hydrate(article)

    def create_article(self, article: Article) -> Article:
        """Store a new article; the caller's object gets the id and timestamps."""
        with self._lock.write_locked():
            self._last_article_id += 1
            now = self._clock()
            article.id = self._last_article_id
            article.created_at = now
            article.updated_at = now
            self._articles[article.id] = self._detach(article)
        logger.debug("Created article id=%s", article.id)
        return article

    def update_article(self, article: Article) -> None:
        with self._lock.write_locked():
            stored = self._articles.get(article.id)
            if stored is None:
                return
            article.created_at = stored.created_at
            # views only move through increase_article_views
            article.views = stored.views
            article.updated_at = self._clock()
            self._articles[article.id] = self._detach(article)
        logger.debug("Updated article id=%s", article.id)

    def delete_article(self, article_id: int) -> None:
        with self._lock.write_locked():
            removed = self._articles.pop(article_id, None)
        if removed is not None:
            logger.debug("Deleted article id=%s", article_id)

    def increase_article_views(self, article_id: int) -> None:
        with self._lock.write_locked():
            article = self._articles.get(article_id)
            if article is not None:
                article.views += 1

    # users

    def list_users(self, limit: Optional[int] = None, offset: int = 0) -> List[User]:
        with self._lock.read_locked():
            users = [self._users[user_id] for user_id in sorted(self._users)]
            end = None if limit is None else offset + limit
            return [copy.deepcopy(u) for u in users[offset:end]]

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock.read_locked():
            user = self._users.get(user_id)
            return copy.deepcopy(user) if user is not None else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock.read_locked():
            user = self._find_username(username)
            return copy.deepcopy(user) if user is not None else None

    def create_user(self, user: User) -> User:
        # the lookup and the insert share one critical section
        with self._lock.write_locked():
            if self._find_username(user.username) is not None:
                raise UsernameTakenError(user.username)
            self._last_user_id += 1
            now = self._clock()
            user.id = self._last_user_id
            if user.created_at is None:
                user.created_at = now
            if user.updated_at is None:
                user.updated_at = now
            self._users[user.id] = copy.deepcopy(user)
        logger.debug("Created user id=%s username=%s", user.id, user.username)
        return user

    def count_users(self) -> int:
        with self._lock.read_locked():
            return len(self._users)

    # helpers, called with the lock held

    def _find_username(self, username: str) -> Optional[User]:
        for user_id in sorted(self._users):
            if self._users[user_id].username == username:
                return self._users[user_id]
        return None

    def _hydrate(self, article: Article) -> Article:
        result = copy.deepcopy(article)
        owner = self._users.get(article.user_id)
        result.user = copy.deepcopy(owner) if owner is not None else None
        return result

    @staticmethod
    def _detach(article: Article) -> Article:
        stored = copy.deepcopy(article)
        stored.user = None
        return stored
