"""
Fire-and-forget owner notifications.

The notifier only publishes a NotificationEvent to the queue; the mail
worker delivers it. Publishing is bounded by a timeout and never raises,
so a broken queue can't fail a deactivation.
"""

import asyncio
import logging

from shortlink_app.queue.models import NotificationEvent
from shortlink_app.queue.strategies import QueueStrategy


logger = logging.getLogger(__name__)

LINK_UNAVAILABLE_SUBJECT = "Your short link is no longer available"


class Notifier:
    """Publishes notification events for the mail worker"""
    
    def __init__(self, queue: QueueStrategy, queue_name: str, timeout: float = 2.0):
        """
        Args:
            queue: Queue strategy the events are published to
            queue_name: Name of the notification queue
            timeout: Seconds to wait for the publish before giving up
        """
        self.queue = queue
        self.queue_name = queue_name
        self.timeout = timeout
    
    async def notify(self, recipient: str, subject: str, body: str, code: str = None) -> bool:
        """
        Publish a notification.
        
        Returns:
            True if the event was queued, False on any failure
        """
        event = NotificationEvent(recipient=recipient, subject=subject, body=body, code=code)
        
        try:
            published = await asyncio.wait_for(
                self.queue.publish(self.queue_name, event),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Timed out queuing notification for %s", recipient)
            return False
        except Exception:
            logger.exception("Failed to queue notification for %s", recipient)
            return False
        
        if not published:
            logger.warning("Queue rejected notification for %s", recipient)
        return published
    
    async def notify_link_unavailable(self, recipient: str, code: str, original_url: str) -> bool:
        """Tell an owner their link was deactivated"""
        body = (
            "Hello!\n\n"
            f"The short link {code} to {original_url} is no longer available.\n"
            "Its click limit was reached or its lifetime has expired.\n\n"
            "Regards,\n"
            "Short Link Service"
        )
        return await self.notify(recipient, LINK_UNAVAILABLE_SUBJECT, body, code=code)
