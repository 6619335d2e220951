import logging
import uuid
from datetime import timedelta
from typing import Optional

from shortlink_app.clock import Clock, SystemClock
from shortlink_app.exceptions import (
    CodeCollisionError,
    ForbiddenError,
    InvalidInputError,
    LinkNotFoundError,
    LinkUnavailableError,
    UnavailableReason,
)
from shortlink_app.models.link import Link
from shortlink_app.models.user import User
from shortlink_app.notifications.notifier import Notifier
from shortlink_app.services.short_code_strategies import DigestShortCodeStrategy, ShortCodeStrategy
from shortlink_app.storage.strategies import LinkStoreStrategy


logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Treat missing and blank emails the same way"""
    if email is None:
        return None
    email = email.strip()
    return email or None


class LinkService:
    """
    Link lifecycle service.
    
    All collaborators are injected (store, notifier, clock, code strategy),
    the service itself keeps no mutable state, so one instance per request
    is fine.
    
    Creation negotiates limits against configuration:
    - click limit: max(|requested|, default) -> the default is a floor
    - TTL: min(requested, default) -> the default is a ceiling
    
    Redirects and the expiry sweep both end in deactivate_link(), which is
    idempotent and notifies the owner at most once.
    """
    
    def __init__(
        self,
        store: LinkStoreStrategy,
        notifier: Optional[Notifier],
        default_click_limit: int,
        default_ttl_seconds: int,
        clock: Optional[Clock] = None,
        short_code_strategy: Optional[ShortCodeStrategy] = None,
        max_mint_retries: int = 5,
    ):
        """
        Initialize link service with dependencies.
        
        Args:
            store: Link store strategy
            notifier: Owner notifier (None disables notifications)
            default_click_limit: Floor for click limits requested at creation
            default_ttl_seconds: Ceiling for TTLs requested at creation
            clock: Source of the current instant
            short_code_strategy: Code generator (SHA-256 digest by default)
            max_mint_retries: Attempts before giving up on a unique code
        """
        self.store = store
        self.notifier = notifier
        self.default_click_limit = default_click_limit
        self.default_ttl_seconds = default_ttl_seconds
        self.clock = clock or SystemClock()
        self.short_code_strategy = short_code_strategy or DigestShortCodeStrategy(self.clock)
        self.max_mint_retries = max_mint_retries

    def get_or_create_user(self, user_handle: Optional[uuid.UUID], email: Optional[str] = None) -> User:
        """
        Resolve the owner for a new link.
        
        A missing handle gets a fresh one. Unknown handles are registered with
        the given email; known users keep the email they were created with.
        """
        if user_handle is None:
            user_handle = uuid.uuid4()
        
        user = self.store.get_user(user_handle)
        if user is not None:
            return user
        
        user = User(handle=user_handle, email=normalize_email(email))
        logger.info("Registering user %s", user_handle)
        return self.store.add_user(user)

    def negotiate_click_limit(self, requested: Optional[int]) -> int:
        if requested is None:
            return self.default_click_limit
        return max(abs(requested), self.default_click_limit)

    def negotiate_ttl_seconds(self, requested: Optional[int]) -> int:
        """
        Raises:
            InvalidInputError: if requested is negative (expires_at would precede created_at)
        """
        if requested is None:
            return self.default_ttl_seconds
        if requested < 0:
            raise InvalidInputError("ttlSeconds must not be negative")
        return min(requested, self.default_ttl_seconds)

    async def create_short_link(
        self,
        original_url: str,
        user_handle: Optional[uuid.UUID] = None,
        email: Optional[str] = None,
        click_limit: Optional[int] = None,
        ttl_seconds: Optional[int] = None,
    ) -> Link:
        """Create a new short link
        
        Always creates a new link, even for a URL the owner already shortened.
        
        Raises:
            InvalidInputError: if original_url is empty or ttl_seconds is negative
            CodeCollisionError: if no unique code was found within the retry budget
        """
        if not original_url or not original_url.strip():
            raise InvalidInputError("originalUrl must not be empty")
        
        final_click_limit = self.negotiate_click_limit(click_limit)
        final_ttl = self.negotiate_ttl_seconds(ttl_seconds)
        user = self.get_or_create_user(user_handle, email)
        
        for attempt in range(1, self.max_mint_retries + 1):
            code = self.short_code_strategy.generate(original_url, user.handle)
            if self.store.code_exists(code):
                logger.warning("Short code collision on %s (attempt %d)", code, attempt)
                continue
            
            created_at = self.clock.now()
            link = Link(
                original_url=original_url,
                code=code,
                created_at=created_at,
                expires_at=created_at + timedelta(seconds=final_ttl),
                current_clicks=0,
                click_limit=final_click_limit,
                active=True,
                owner=user,
                owner_handle=user.handle,
            )
            try:
                link = self.store.add_link(link)
            except CodeCollisionError:
                logger.warning("Short code %s taken concurrently (attempt %d)", code, attempt)
                continue
            
            logger.info(
                "Created link %s for user %s (limit=%d, ttl=%ds)",
                code, user.handle, final_click_limit, final_ttl,
            )
            return link
        
        raise CodeCollisionError(
            f"Could not generate unique short code after {self.max_mint_retries} attempts"
        )

    async def get_link(self, code: str) -> Link:
        """Get link by short code
        
        Raises:
            LinkNotFoundError: if no link has this code
        """
        link = self.store.get_link(code)
        if link is None:
            raise LinkNotFoundError(code)
        return link

    def _unavailable_reason(self, link: Link) -> Optional[UnavailableReason]:
        """First failing redirect check, in order, or None if the link may redirect"""
        if not link.active:
            return UnavailableReason.INACTIVE
        if link.is_exhausted():
            return UnavailableReason.LIMIT_REACHED
        if link.is_expired(self.clock.now()):
            return UnavailableReason.EXPIRED
        return None

    async def resolve_for_redirect(self, code: str) -> str:
        """
        Admit one redirect and return the original URL.
        
        Flow:
        1. Look up the link
        2. Reject inactive links
        3. Deactivate and reject exhausted or expired links
        4. Atomically consume one click
        
        If the atomic increment loses a race (another request took the last
        click, or the sweep deactivated the link), the link is re-read and
        rejected.
        
        Raises:
            LinkNotFoundError: unknown code
            LinkUnavailableError: inactive, limit reached or expired
        """
        link = await self.get_link(code)
        
        reason = self._unavailable_reason(link)
        if reason is None:
            if self.store.increment_clicks(link, self.clock.now()):
                return link.original_url
            
            link = await self.get_link(code)
            reason = self._unavailable_reason(link) or UnavailableReason.LIMIT_REACHED
        
        if reason is not UnavailableReason.INACTIVE:
            await self.deactivate_link(link)
        
        raise LinkUnavailableError(code, reason)

    async def deactivate_link(self, link: Link) -> bool:
        """
        Deactivate a link and notify its owner.
        
        Safe to call on inactive links: only the call that actually flips
        `active` sends a notification.
        
        Returns:
            True if this call deactivated the link
        """
        if not self.store.deactivate(link):
            return False
        
        logger.info("Deactivated link %s", link.code)
        
        email = normalize_email(link.owner.email if link.owner else None)
        if email and self.notifier is not None:
            await self.notifier.notify_link_unavailable(email, link.code, link.original_url)
        
        return True

    def _check_owner(self, link: Link, user_handle: uuid.UUID, action: str):
        if link.owner_handle != user_handle:
            raise ForbiddenError(f"Not allowed to {action} a link owned by another user")

    async def edit_click_limit(self, user_handle: uuid.UUID, code: str, new_limit: int) -> Link:
        """
        Change a link's click limit (owner only).
        
        No floor here: a limit at or below current_clicks keeps the link
        active until the next redirect deactivates it.
        
        Raises:
            LinkNotFoundError: unknown code
            ForbiddenError: caller is not the owner
            InvalidInputError: new_limit is not positive
        """
        link = await self.get_link(code)
        self._check_owner(link, user_handle, "edit")
        
        if new_limit < 1:
            raise InvalidInputError("newLimit must be a positive integer")
        
        link.click_limit = new_limit
        link = self.store.save_link(link)
        logger.info("Click limit of %s set to %d", code, new_limit)
        return link

    async def delete_link(self, user_handle: uuid.UUID, code: str) -> bool:
        """
        Delete a link (owner only, hard delete, no notification).
        
        Returns:
            True if a link was removed, False if it didn't exist
        
        Raises:
            ForbiddenError: caller is not the owner
        """
        link = self.store.get_link(code)
        if link is None:
            return False
        
        self._check_owner(link, user_handle, "delete")
        self.store.delete_link(link)
        logger.info("Deleted link %s", code)
        return True

    async def deactivate_expired_links(self) -> int:
        """
        Sweep: deactivate every active link whose lifetime has expired.
        
        Returns:
            Number of links deactivated by this run
        """
        now = self.clock.now()
        deactivated = 0
        
        for link in self.store.all_links():
            if link.active and link.is_expired(now):
                if await self.deactivate_link(link):
                    deactivated += 1
        
        logger.info("Expired link sweep deactivated %d links", deactivated)
        return deactivated
