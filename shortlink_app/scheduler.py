"""
Daily expired-link sweep.

The scheduler sleeps until the next configured wall-clock time, runs the
sweep, and repeats. Ticks missed while the process was down are not
replayed: the next tick deactivates everything that expired meanwhile.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from shortlink_app.clock import Clock, SystemClock


logger = logging.getLogger(__name__)


class SweepScheduler:
    """
    Runs an async sweep callback once a day at hour:minute (UTC).
    
    Both the clock and the sleep function are injected so tests can drive
    ticks without waiting.
    """
    
    def __init__(
        self,
        sweep: Callable[[], Awaitable[int]],
        clock: Optional[Clock] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        hour: int = 0,
        minute: int = 0,
    ):
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Invalid sweep time {hour:02d}:{minute:02d}")
        self.sweep = sweep
        self.clock = clock or SystemClock()
        self.sleep = sleep
        self.hour = hour
        self.minute = minute
        self.running = False
        self.runs = 0
    
    def next_run_at(self, now: datetime) -> datetime:
        """Next scheduled instant strictly after `now`"""
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate
    
    def seconds_until_next_run(self) -> float:
        now = self.clock.now()
        return (self.next_run_at(now) - now).total_seconds()
    
    async def run_once(self) -> int:
        """Run one sweep tick; errors are logged, not raised"""
        self.runs += 1
        try:
            deactivated = await self.sweep()
        except Exception:
            logger.exception("Expired link sweep failed")
            return 0
        return deactivated
    
    async def start(self):
        """Loop until stopped or cancelled"""
        self.running = True
        logger.info("Sweep scheduler started (daily at %02d:%02d UTC)", self.hour, self.minute)
        
        while self.running:
            try:
                await self.sleep(self.seconds_until_next_run())
                if not self.running:
                    break
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Sweep scheduler cancelled")
                break
        
        logger.info("Sweep scheduler stopped")
    
    def stop(self):
        """Stop after the current sleep"""
        self.running = False
