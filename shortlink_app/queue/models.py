"""
Data models for queue messages.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationEvent(BaseModel):
    """
    Event model for owner email notifications.
    
    Published when a link is deactivated and its owner has an email address.
    The mail worker consumes it and delivers a plain-text UTF-8 message.
    """
    
    recipient: str = Field(..., description="Email address of the link owner")
    subject: str = Field(..., description="Message subject")
    body: str = Field(..., description="Plain-text message body")
    code: Optional[str] = Field(None, description="Short code the notification is about")
    created_at: datetime = Field(default_factory=_utcnow, description="When the event was published")
    attempts: int = Field(0, description="Failed delivery attempts so far")
    
    # Set by the queue on consume, used for acknowledgment
    message_id: Optional[str] = Field(None, exclude=True)
    
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "recipient": "owner@example.com",
                "subject": "Your short link is no longer available",
                "body": "The short link 08c895b9 to https://google.com is no longer available.",
                "code": "08c895b9",
                "created_at": "2025-10-29T10:30:00Z",
            }
        }
    )
