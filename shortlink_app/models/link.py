from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from shortlink_app.database.connection import Base


class Link(Base):
    """
    A short link (alias) and its two resource limits.
    
    Only the 8-character code is stored; the public short URL is composed
    from settings.public_base_url at the API boundary.
    """
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    original_url = Column(String, nullable=False)
    # Note: unique=True automatically creates an index
    code = Column(String(8), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    current_clicks = Column(Integer, nullable=False, default=0)
    click_limit = Column(Integer, nullable=False)
    # Monotone: True -> False only
    active = Column(Boolean, nullable=False, default=True)
    owner_handle = Column(Uuid, ForeignKey("users.handle"), nullable=False, index=True)

    owner = relationship("User", back_populates="links", lazy="joined")

    def is_expired(self, now) -> bool:
        return self.expires_at < now

    def is_exhausted(self) -> bool:
        return self.current_clicks >= self.click_limit
