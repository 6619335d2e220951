"""
Factory for creating link store instances.
"""

from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from .strategies import LinkStoreStrategy, SQLAlchemyLinkStore, InMemoryLinkStore


class LinkStoreBackend(Enum):
    """Available link store backends"""
    SQLALCHEMY = "sqlalchemy"
    MEMORY = "memory"


class LinkStoreFactory:
    """
    Simple factory for creating link stores.
    
    SQLAlchemy stores wrap the caller's session, so a new one is built per
    session. The in-memory store is a singleton, otherwise every request
    would see an empty store.
    """
    
    _memory_instance: Optional[InMemoryLinkStore] = None
    
    @classmethod
    def create(cls, backend: LinkStoreBackend, db: Optional[Session] = None) -> LinkStoreStrategy:
        """
        Create a link store.
        
        Args:
            backend: Type of store backend (from enum)
            db: Database session, required for the SQLAlchemy backend
            
        Returns:
            LinkStoreStrategy instance
        """
        if backend == LinkStoreBackend.SQLALCHEMY:
            if db is None:
                raise ValueError("SQLAlchemy link store needs a database session")
            return SQLAlchemyLinkStore(db)
        
        if backend == LinkStoreBackend.MEMORY:
            if cls._memory_instance is None:
                cls._memory_instance = InMemoryLinkStore()
            return cls._memory_instance
        
        raise ValueError(f"Unknown link store backend: {backend}")
    
    @classmethod
    def clear_instance(cls):
        """Clear cached in-memory store (for testing)"""
        cls._memory_instance = None
