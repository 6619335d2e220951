"""
FastAPI dependencies for dependency injection.

This module provides the queue, notifier, clock and store instances that
are injected into the link service and routes. Tests override these with
fakes through app.dependency_overrides.
"""

import uuid
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from shortlink_app.clock import Clock, SystemClock
from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.exceptions import InvalidInputError
from shortlink_app.notifications.notifier import Notifier
from shortlink_app.queue.factory import QueueFactory, QueueBackend
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.storage.factory import LinkStoreFactory, LinkStoreBackend
from shortlink_app.storage.strategies import LinkStoreStrategy


@lru_cache()
def get_queue() -> QueueStrategy:
    """Get queue instance (singleton)"""
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


@lru_cache()
def get_clock() -> Clock:
    return SystemClock()


def get_notifier(queue: QueueStrategy = Depends(get_queue)) -> Notifier:
    return Notifier(
        queue=queue,
        queue_name=settings.notification_queue_name,
        timeout=settings.notifier_timeout_seconds,
    )


def get_link_store(db: Session = Depends(get_db)) -> LinkStoreStrategy:
    backend = LinkStoreBackend(settings.store_backend)
    return LinkStoreFactory.create(backend, db=db)


def build_link_service(store: LinkStoreStrategy, notifier: Optional[Notifier], clock: Clock):
    """Wire a LinkService from its collaborators and settings"""
    from shortlink_app.services.link_service import LinkService
    return LinkService(
        store=store,
        notifier=notifier,
        default_click_limit=settings.default_click_limit,
        default_ttl_seconds=settings.default_ttl_seconds,
        clock=clock,
        max_mint_retries=settings.max_mint_retries,
    )


def get_link_service(
    store: LinkStoreStrategy = Depends(get_link_store),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    """
    Get LinkService with all dependencies injected.
    
    Controller depends on service, service depends on infrastructure
    (store, notifier, clock).
    """
    return build_link_service(store, notifier, clock)


def parse_user_handle(value: Optional[str]) -> Optional[uuid.UUID]:
    """
    Parse a userUuid query parameter.
    
    Empty values count as absent; anything else must be a UUID.
    
    Raises:
        InvalidInputError: if the value is not a UUID
    """
    if value is None or not value.strip():
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        raise InvalidInputError(f"Malformed userUuid: {value!r}")
