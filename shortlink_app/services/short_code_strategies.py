"""
Short code generation strategies.
Uses Strategy Pattern so the link service does not care how codes are minted.
"""

import hashlib
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from shortlink_app.clock import Clock, SystemClock


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""
    
    @abstractmethod
    def generate(self, original_url: str, user_handle: uuid.UUID) -> str:
        """
        Generate a candidate short code.
        
        Implementations may be non-deterministic; the caller checks the
        store for collisions and retries.
        
        Args:
            original_url: The URL being shortened
            user_handle: Handle of the link owner
            
        Returns:
            A short code string
        """
        pass


class DigestShortCodeStrategy(ShortCodeStrategy):
    """
    SHA-256 digest strategy.
    
    Hashes URL + owner handle + random salt + current milliseconds and keeps
    the first `length` hex characters. The salt and timestamp make two calls
    with the same arguments differ with overwhelming probability.
    
    Pros: No DB round trip, owner-specific codes
    Cons: Truncated digest can collide, caller must retry
    """
    
    SALT_LENGTH = 8
    
    def __init__(self, clock: Optional[Clock] = None, length: int = 8):
        self.clock = clock or SystemClock()
        self.length = length
    
    def generate(self, original_url: str, user_handle: uuid.UUID) -> str:
        """Mint a hex code from the digest of the link inputs"""
        salt = str(uuid.uuid4())[:self.SALT_LENGTH]
        payload = f"{original_url}{user_handle}{salt}{self.clock.millis()}"
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return digest[:self.length]
