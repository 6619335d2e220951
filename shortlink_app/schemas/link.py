import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from shortlink_app.config import settings


def build_short_url(code: str) -> str:
    """Compose the public short URL for a code"""
    return f"{settings.public_base_url.rstrip('/')}/api/{code}"


class LinkResponse(BaseModel):
    """Response schema that serializes a Link model and its owner
    
    - from_attributes=True reads straight from the SQLAlchemy model
    - @computed_field adds the public short URL
    """
    code: str
    original_url: str
    user_uuid: uuid.UUID = Field(validation_alias=AliasChoices("user_uuid", "owner_handle"))
    click_limit: int
    current_clicks: int
    active: bool
    created_at: datetime
    expires_at: datetime

    @computed_field
    @property
    def short_url(self) -> str:
        return build_short_url(self.code)

    model_config = ConfigDict(from_attributes=True)


class CreatedLinkResponse(LinkResponse):
    """Creation response, echoing the owner's email"""
    email: Optional[str] = None

    @classmethod
    def from_link(cls, link) -> "CreatedLinkResponse":
        response = cls.model_validate(link)
        response.email = link.owner.email if link.owner else None
        return response


class MessageResponse(BaseModel):
    detail: str
