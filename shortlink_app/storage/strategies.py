"""
Link store strategies using Strategy Pattern.

The link service depends only on this capability set:
- user lookup by handle, user creation
- link lookup by code, creation, update, deletion, full scan
- two atomic conditional updates (click increment, deactivation)

Implementations:
- SQLAlchemy: any SQL database (SQLite for development, PostgreSQL in production)
- In-memory: tests and single-process development
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.exceptions import CodeCollisionError, StoreError
from shortlink_app.models.link import Link
from shortlink_app.models.user import User


logger = logging.getLogger(__name__)


class LinkStoreStrategy(ABC):
    """
    Abstract base class for link stores.
    
    All methods are synchronous and may block on I/O. The two conditional
    updates are the only way the redirect path and the sweep mutate
    `current_clicks` and `active`, which keeps both monotone under
    concurrent requests.
    """
    
    @abstractmethod
    def get_user(self, handle: uuid.UUID) -> Optional[User]:
        """Get user by handle, or None"""
        pass
    
    @abstractmethod
    def add_user(self, user: User) -> User:
        """Persist a new user"""
        pass
    
    @abstractmethod
    def get_link(self, code: str) -> Optional[Link]:
        """Get link by short code, or None"""
        pass
    
    def code_exists(self, code: str) -> bool:
        """Check whether a short code is already taken"""
        return self.get_link(code) is not None
    
    @abstractmethod
    def add_link(self, link: Link) -> Link:
        """
        Persist a new link.
        
        Raises:
            CodeCollisionError: if the code was taken concurrently
        """
        pass
    
    @abstractmethod
    def save_link(self, link: Link) -> Link:
        """Persist changes made to an existing link"""
        pass
    
    @abstractmethod
    def delete_link(self, link: Link) -> None:
        """Remove a link"""
        pass
    
    @abstractmethod
    def all_links(self) -> List[Link]:
        """Return every stored link"""
        pass
    
    @abstractmethod
    def increment_clicks(self, link: Link, now: datetime) -> bool:
        """
        Atomically add one click if the link can still redirect.
        
        The increment only applies while the link is active, under its
        click limit and not expired at `now`.
        
        Returns:
            True if this call consumed a click, False otherwise
        """
        pass
    
    @abstractmethod
    def deactivate(self, link: Link) -> bool:
        """
        Atomically flip `active` from True to False.
        
        Returns:
            True only for the call that performed the transition
        """
        pass


class SQLAlchemyLinkStore(LinkStoreStrategy):
    """
    SQL store on top of a SQLAlchemy session.
    
    Conditional updates run as single UPDATE ... WHERE statements, so the
    database serializes concurrent redirects on the same row.
    """
    
    def __init__(self, db: Session):
        """
        Args:
            db: Database session (one per request or per job)
        """
        self.db = db
    
    @contextmanager
    def _transaction(self):
        """Commit on success, roll back and wrap SQLAlchemy errors"""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store operation failed: %s", e)
            raise StoreError("Store operation failed") from e
    
    def get_user(self, handle: uuid.UUID) -> Optional[User]:
        try:
            return self.db.get(User, handle)
        except SQLAlchemyError as e:
            raise StoreError("Could not load user") from e
    
    def add_user(self, user: User) -> User:
        with self._transaction():
            self.db.add(user)
        self.db.refresh(user)
        return user
    
    def get_link(self, code: str) -> Optional[Link]:
        try:
            return self.db.query(Link).filter(Link.code == code).first()
        except SQLAlchemyError as e:
            raise StoreError("Could not load link") from e
    
    def add_link(self, link: Link) -> Link:
        self.db.add(link)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Unique index on code lost a race with a concurrent insert
            self.db.rollback()
            raise CodeCollisionError(f"Short code '{link.code}' is already taken") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not store link %s: %s", link.code, e)
            raise StoreError("Could not store link") from e
        self.db.refresh(link)
        return link
    
    def save_link(self, link: Link) -> Link:
        with self._transaction():
            self.db.add(link)
        self.db.refresh(link)
        return link
    
    def delete_link(self, link: Link) -> None:
        with self._transaction():
            self.db.delete(link)
    
    def all_links(self) -> List[Link]:
        try:
            return self.db.query(Link).all()
        except SQLAlchemyError as e:
            raise StoreError("Could not list links") from e
    
    def increment_clicks(self, link: Link, now: datetime) -> bool:
        statement = (
            update(Link)
            .where(
                Link.id == link.id,
                Link.active == True,  # noqa: E712
                Link.current_clicks < Link.click_limit,
                Link.expires_at >= now,
            )
            .values(current_clicks=Link.current_clicks + 1)
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.db.execute(statement)
        
        if result.rowcount != 1:
            return False
        
        self.db.refresh(link)
        return True
    
    def deactivate(self, link: Link) -> bool:
        statement = (
            update(Link)
            .where(Link.id == link.id, Link.active == True)  # noqa: E712
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        with self._transaction():
            result = self.db.execute(statement)
        
        # Reload so callers see active=False even when another request won
        try:
            self.db.refresh(link)
        except SQLAlchemyError:
            # Link was deleted concurrently; nothing left to deactivate
            pass
        return result.rowcount == 1


class InMemoryLinkStore(LinkStoreStrategy):
    """
    In-memory store using Python dicts guarded by a lock.
    
    Pros:
    - No database needed
    - Fast, good for tests and local development
    
    Cons:
    - Not persistent (lost on restart)
    - Not shared between processes
    """
    
    def __init__(self):
        self._users: Dict[uuid.UUID, User] = {}
        self._links: Dict[str, Link] = {}
        self._next_id = 1
        self._lock = threading.Lock()
    
    def get_user(self, handle: uuid.UUID) -> Optional[User]:
        with self._lock:
            return self._users.get(handle)
    
    def add_user(self, user: User) -> User:
        with self._lock:
            self._users[user.handle] = user
        return user
    
    def get_link(self, code: str) -> Optional[Link]:
        with self._lock:
            return self._links.get(code)
    
    def add_link(self, link: Link) -> Link:
        with self._lock:
            if link.code in self._links:
                raise CodeCollisionError(f"Short code '{link.code}' is already taken")
            link.id = self._next_id
            self._next_id += 1
            if link.owner is not None:
                link.owner_handle = link.owner.handle
            self._links[link.code] = link
        return link
    
    def save_link(self, link: Link) -> Link:
        with self._lock:
            self._links[link.code] = link
        return link
    
    def delete_link(self, link: Link) -> None:
        with self._lock:
            self._links.pop(link.code, None)
    
    def all_links(self) -> List[Link]:
        with self._lock:
            return list(self._links.values())
    
    def increment_clicks(self, link: Link, now: datetime) -> bool:
        with self._lock:
            stored = self._links.get(link.code)
            if (
                stored is None
                or not stored.active
                or stored.is_exhausted()
                or stored.is_expired(now)
            ):
                return False
            stored.current_clicks += 1
            return True
    
    def deactivate(self, link: Link) -> bool:
        with self._lock:
            stored = self._links.get(link.code)
            if stored is None or not stored.active:
                return False
            stored.active = False
            return True
