from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import relationship
from shortlink_app.database.connection import Base


class User(Base):
    """
    Link owner.
    
    The handle is the only credential: whoever presents it may edit or
    delete the user's links. Users are created lazily and never deleted.
    """
    __tablename__ = "users"

    handle = Column(Uuid, primary_key=True)
    # Empty strings are normalized to NULL before they get here
    email = Column(String, nullable=True)

    links = relationship("Link", back_populates="owner")
