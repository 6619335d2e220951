"""
Notification queue backends.

The notifier publishes one NotificationEvent per deactivated link; the mail
worker consumes events, delivers them and acknowledges the ones it handled.
"""

from abc import ABC, abstractmethod
from typing import List, Dict
import json
import logging
import socket
from collections import deque
from .models import NotificationEvent


logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for notification queues.
    
    Delivery is at-least-once: a consumed event stays owned by the queue
    until the mail worker acknowledges it.
    """
    
    @abstractmethod
    async def publish(self, queue_name: str, message: NotificationEvent) -> bool:
        """
        Publish a notification event.
        
        Returns:
            True if the event was queued, False otherwise
        """
        pass
    
    @abstractmethod
    async def consume(
        self, 
        queue_name: str, 
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[NotificationEvent]:
        """
        Take up to `batch_size` events for delivery.
        
        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of events to retrieve
            block_time: Time to wait for events (milliseconds)
        """
        pass
    
    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Mark events as handled so they are never handed out again"""
        pass
    
    async def consume_batch(self, queue_name: str, batch_size: int = 100, block_time: int = 1000) -> List[NotificationEvent]:
        """Consume a batch of events (alias for consume with larger default batch size)"""
        return await self.consume(queue_name, batch_size, block_time)


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams notification queue.
    
    How it works:
    1. Notifier publishes events using XADD
    2. Mail workers read new events using XREADGROUP
    3. Handled events are acknowledged using XACK
    4. Events left pending by a worker that died before acknowledging are
       reclaimed with XAUTOCLAIM once idle for `reclaim_idle_ms`
    """
    
    def __init__(self, redis_client, consumer_group: str = "mail_workers", reclaim_idle_ms: int = 60000):
        """
        Args:
            redis_client: Redis client instance
            consumer_group: Name of consumer group for mail workers
            reclaim_idle_ms: Idle time after which a pending event is redelivered
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.reclaim_idle_ms = reclaim_idle_ms
        self.consumer_name = f"worker-{socket.gethostname()}-{id(self)}"
        self._initialized_streams = set()
    
    async def _ensure_stream_exists(self, queue_name: str):
        """Create the stream and consumer group if they don't exist"""
        if queue_name in self._initialized_streams:
            return
        
        try:
            # MKSTREAM creates the stream together with the group
            self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id='0',
                mkstream=True
            )
            logger.info("Created Redis stream %s", queue_name)
        except Exception as e:
            # Group might already exist, that's OK
            if "BUSYGROUP" not in str(e):
                logger.warning("Stream creation warning: %s", e)
        
        self._initialized_streams.add(queue_name)
    
    def _parse(self, entries) -> List[NotificationEvent]:
        events = []
        for message_id, message_data in entries:
            # XAUTOCLAIM reports entries trimmed from the stream with no data
            if not message_data:
                continue
            try:
                data = json.loads(message_data[b'data'].decode('utf-8'))
                event = NotificationEvent(**data)
                event.message_id = message_id.decode('utf-8')
                events.append(event)
            except Exception as e:
                logger.warning("Failed to parse notification %s: %s", message_id, e)
        return events
    
    async def publish(self, queue_name: str, message: NotificationEvent) -> bool:
        """Append the event to the stream (XADD)"""
        try:
            await self._ensure_stream_exists(queue_name)
            self.redis.xadd(queue_name, {'data': message.model_dump_json()})
            return True
        except Exception as e:
            logger.error("Redis publish error: %s", e)
            return False
    
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[NotificationEvent]:
        """
        Reclaim stale pending events first, then read new ones.
        
        Nothing leaves the pending list until acknowledged.
        """
        try:
            await self._ensure_stream_exists(queue_name)
            
            reclaimed = self.redis.xautoclaim(
                queue_name,
                self.consumer_group,
                self.consumer_name,
                min_idle_time=self.reclaim_idle_ms,
                start_id='0-0',
                count=batch_size,
            )
            events = self._parse(reclaimed[1])
            if events:
                logger.info("Reclaimed %d pending notifications", len(events))
            
            remaining = batch_size - len(events)
            if remaining <= 0:
                return events
            
            # '>' means "events never delivered to any consumer"
            messages = self.redis.xreadgroup(
                groupname=self.consumer_group,
                consumername=self.consumer_name,
                streams={queue_name: '>'},
                count=remaining,
                block=block_time
            )
            for stream_name, stream_messages in messages or []:
                events.extend(self._parse(stream_messages))
            
            return events
            
        except Exception as e:
            logger.error("Redis consume error: %s", e)
            return []
    
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Mark events as handled (XACK)"""
        try:
            if not message_ids:
                return True
            self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True
        except Exception as e:
            logger.error("Redis ack error: %s", e)
            return False


class InMemoryQueue(QueueStrategy):
    """
    In-memory notification queue using Python deque.
    
    Single process only and lost on restart; meant for development and tests.
    Events are removed on consume, so acknowledging is a no-op.
    """
    
    def __init__(self):
        self._queues: Dict[str, deque] = {}
    
    def _get_queue(self, queue_name: str) -> deque:
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
        return self._queues[queue_name]
    
    async def publish(self, queue_name: str, message: NotificationEvent) -> bool:
        self._get_queue(queue_name).append(message)
        return True
    
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[NotificationEvent]:
        """Pop up to `batch_size` events; block_time is ignored"""
        queue = self._get_queue(queue_name)
        messages = []
        
        while queue and len(messages) < batch_size:
            messages.append(queue.popleft())
        
        return messages
    
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        return True
