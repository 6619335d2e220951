"""
Storage module for users and links.
Implements Strategy Pattern for flexible persistence backends.
"""

from .strategies import LinkStoreStrategy, SQLAlchemyLinkStore, InMemoryLinkStore
from .factory import LinkStoreFactory, LinkStoreBackend

__all__ = [
    "LinkStoreStrategy",
    "SQLAlchemyLinkStore",
    "InMemoryLinkStore",
    "LinkStoreFactory",
    "LinkStoreBackend",
]
