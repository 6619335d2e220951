"""
Wall-clock sources.

All instants in the service are naive UTC datetimes; SQLite drops timezone
information, so keeping everything naive avoids mixed comparisons.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    """Abstract source of the current instant"""
    
    @abstractmethod
    def now(self) -> datetime:
        """Current instant as a naive UTC datetime"""
        pass
    
    def millis(self) -> int:
        """Current instant as milliseconds since the epoch"""
        return int(self.now().replace(tzinfo=timezone.utc).timestamp() * 1000)


class SystemClock(Clock):
    """Clock backed by the system wall clock"""
    
    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)
