"""
Mail Worker

Consumes notification events from the queue and delivers them by email.

Architecture:
- Consumes messages from queue in batches
- Delivers each message through a Mailer (SMTP or log)
- Failed messages are re-queued with an attempt count and retried on a
  later batch, up to `mail_max_attempts`, then dropped with an error log
- A message is acknowledged only once it was delivered, re-queued or dropped
"""

import asyncio
import logging
import signal
import sys
from typing import List, Tuple

from shortlink_app.config import settings
from shortlink_app.notifications.mailers import Mailer
from shortlink_app.queue.models import NotificationEvent
from shortlink_app.queue.strategies import QueueStrategy


logger = logging.getLogger(__name__)


class MailWorker:
    """
    Mail delivery worker with batch processing.
    
    Runs embedded in the API process (see main.py lifespan) or standalone:
        python -m shortlink_app.notifications.mail_worker
    """
    
    def __init__(
        self,
        queue: QueueStrategy,
        mailer: Mailer,
        queue_name: str = None,
        batch_size: int = None,
        poll_interval: float = None,
        max_attempts: int = None,
    ):
        """
        Initialize worker with dependencies.
        
        Args:
            queue: Queue strategy for consuming messages
            mailer: Mail delivery strategy
            queue_name: Notification queue name (default from settings)
            batch_size: Messages per batch (default from settings)
            poll_interval: Seconds to wait when the queue is empty
            max_attempts: Deliveries tried per message (default from settings)
        """
        self.queue = queue
        self.mailer = mailer
        self.queue_name = queue_name or settings.notification_queue_name
        self.batch_size = batch_size or settings.queue_batch_size
        self.poll_interval = settings.queue_worker_interval if poll_interval is None else poll_interval
        self.max_attempts = max_attempts or settings.mail_max_attempts
        self.running = False
        self.sent_count = 0
        self.failed_count = 0
    
    async def start(self):
        """Run until stopped or cancelled"""
        self.running = True
        logger.info("Mail worker started (queue=%s, batch size=%d)", self.queue_name, self.batch_size)
        
        while self.running:
            try:
                processed = await self.process_once()
                if not processed:
                    await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                logger.info("Mail worker task cancelled")
                break
            except Exception:
                logger.exception("Error processing notification batch")
                await asyncio.sleep(1)
        
        logger.info("Mail worker stopped (sent=%d, failed=%d)", self.sent_count, self.failed_count)
    
    async def process_once(self) -> int:
        """
        Consume and deliver one batch.
        
        Returns:
            Number of messages consumed
        """
        messages = await self.queue.consume_batch(
            queue_name=self.queue_name,
            batch_size=self.batch_size,
            block_time=1000
        )
        if not messages:
            return 0
        
        delivered, failed = await self._deliver_batch(messages)
        handled = delivered + await self._requeue_failed(failed)
        
        message_ids = [msg.message_id for msg in handled if msg.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)
        
        return len(messages)
    
    async def _deliver_batch(self, messages: List[NotificationEvent]) -> Tuple[List[NotificationEvent], List[NotificationEvent]]:
        delivered, failed = [], []
        for event in messages:
            try:
                # smtplib blocks, keep it off the event loop
                await asyncio.to_thread(self.mailer.send, event.recipient, event.subject, event.body)
            except Exception as e:
                self.failed_count += 1
                logger.error("Failed to deliver notification to %s: %s", event.recipient, e)
                failed.append(event)
                continue
            self.sent_count += 1
            delivered.append(event)
        return delivered, failed
    
    async def _requeue_failed(self, failed: List[NotificationEvent]) -> List[NotificationEvent]:
        """
        Publish failed messages again with one more recorded attempt.
        
        Returns:
            Messages whose original entry can be acknowledged
        """
        handled = []
        for event in failed:
            retry = event.model_copy(update={"attempts": event.attempts + 1, "message_id": None})
            if retry.attempts >= self.max_attempts:
                logger.error(
                    "Dropping notification to %s after %d attempts", event.recipient, retry.attempts
                )
                handled.append(event)
            elif await self.queue.publish(self.queue_name, retry):
                handled.append(event)
            else:
                # Left unacknowledged, Redis redelivers it once idle
                logger.warning("Could not re-queue notification to %s", event.recipient)
        return handled
    
    def _signal_handler(self, signum, frame):
        """Handle signals for graceful shutdown"""
        logger.info("Received signal %s. Shutting down gracefully...", signum)
        self.stop()
    
    def stop(self):
        """Stop the worker"""
        self.running = False


async def main():
    """
    Main entry point for the standalone mail worker.
    
    Usage:
        python -m shortlink_app.notifications.mail_worker
    """
    from shortlink_app.logging_config import setup_logging
    from shortlink_app.notifications.mailers import create_mailer
    from shortlink_app.queue.factory import QueueFactory, QueueBackend
    
    setup_logging(settings.log_level)
    logger.info(
        "Starting mail worker (environment=%s, queue=%s, mail=%s)",
        settings.environment, settings.queue_backend, settings.mail_backend,
    )
    
    queue = QueueFactory.create(QueueBackend(settings.queue_backend))
    worker = MailWorker(queue=queue, mailer=create_mailer())
    
    signal.signal(signal.SIGINT, worker._signal_handler)
    signal.signal(signal.SIGTERM, worker._signal_handler)
    
    try:
        await worker.start()
    except Exception:
        logger.exception("Fatal error in mail worker")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
