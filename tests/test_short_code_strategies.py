"""
Tests for short code generation strategies.
"""
import hashlib
import uuid
from datetime import datetime

from shortlink_app.services import short_code_strategies
from shortlink_app.services.short_code_strategies import DigestShortCodeStrategy

from tests.conftest import FakeClock


HANDLE = uuid.UUID("4b59c943-891d-4cc1-95ee-2111c3fca035")


class TestDigestStrategy:
    """Test SHA-256 digest strategy"""

    def test_generates_eight_hex_characters(self):
        strategy = DigestShortCodeStrategy()

        code = strategy.generate("https://google.com", HANDLE)

        assert len(code) == 8
        assert all(char in "0123456789abcdef" for char in code)

    def test_same_inputs_give_different_codes(self):
        """Salt makes the strategy non-deterministic even on a frozen clock"""
        strategy = DigestShortCodeStrategy(clock=FakeClock())

        codes = {strategy.generate("https://google.com", HANDLE) for _ in range(50)}

        assert len(codes) > 1

    def test_digest_of_url_handle_salt_and_millis(self, monkeypatch):
        clock = FakeClock(datetime(2026, 1, 1))
        salt_source = uuid.UUID("08c895b9-0000-4000-8000-000000000000")
        monkeypatch.setattr(short_code_strategies.uuid, "uuid4", lambda: salt_source)

        code = DigestShortCodeStrategy(clock=clock).generate("https://google.com", HANDLE)

        payload = f"https://google.com{HANDLE}08c895b9{clock.millis()}"
        assert code == hashlib.sha256(payload.encode("utf-8")).hexdigest()[:8]
        assert clock.millis() == 1767225600000

    def test_custom_length(self):
        strategy = DigestShortCodeStrategy(length=12)
        assert len(strategy.generate("https://google.com", HANDLE)) == 12
