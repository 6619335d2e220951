"""
Database models for the short link service.

Users own links; a link carries its own click counter, so there is no
separate analytics table.
"""

from .user import User
from .link import Link

__all__ = ["User", "Link"]
