"""Tests for the auth session token cache."""

from unittest.mock import MagicMock

import pytest
import requests

from stampprint.errors import AuthError
from stampprint.session import TOKEN_LIFETIME, AuthSession


class FakeClock:
    """Controllable clock."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http(response_factory):
    """HTTP session whose login succeeds."""
    mock = MagicMock()
    mock.post.return_value = response_factory(json_data={"token": "tok-1"})
    return mock


@pytest.fixture
def session(http, clock):
    return AuthSession("https://print.example.com/api/", "device", "secret", http=http, clock=clock)


class TestGetToken:
    """Tests for token acquisition and reuse."""

    def test_first_call_logs_in(self, session, http):
        """Should post credentials to /session on first use."""
        assert session.get_token() == "tok-1"

        http.post.assert_called_once()
        args, kwargs = http.post.call_args
        assert args[0] == "https://print.example.com/api/session"
        assert kwargs["json"] == {"login": "device", "password": "secret"}

    def test_reuses_token_within_window(self, session, http, clock):
        """Two calls before expiry should issue exactly one login."""
        session.get_token()
        clock.now += TOKEN_LIFETIME - 1
        session.get_token()

        assert http.post.call_count == 1

    def test_logs_in_again_after_expiry(self, session, http, clock, response_factory):
        """A call at or after expiry should log in again."""
        session.get_token()
        http.post.return_value = response_factory(json_data={"token": "tok-2"})
        clock.now += TOKEN_LIFETIME

        assert session.get_token() == "tok-2"
        assert http.post.call_count == 2

    def test_expiry_is_one_day_after_login(self, session, clock):
        """Credential should expire 24h after it was obtained."""
        session.get_token()
        assert session.credential.expires_at == clock.now + 24 * 60 * 60


class TestLoginFailure:
    """Tests for failed logins."""

    def test_missing_token_raises(self, session, http, response_factory):
        """Should raise AuthError when the response has no token."""
        http.post.return_value = response_factory(json_data={})
        with pytest.raises(AuthError):
            session.get_token()

    def test_http_error_raises(self, session, http, response_factory):
        """Should raise AuthError on a non-200 status."""
        http.post.return_value = response_factory(status_code=403, json_data={"error": "no"})
        with pytest.raises(AuthError, match="403"):
            session.get_token()

    def test_network_error_raises(self, session, http):
        """Should wrap request exceptions in AuthError."""
        http.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(AuthError):
            session.get_token()

    def test_failure_clears_cached_token(self, session, http, clock, response_factory):
        """An expired token should be discarded when re-login fails."""
        session.get_token()
        clock.now += TOKEN_LIFETIME
        http.post.return_value = response_factory(status_code=500, json_data={})

        with pytest.raises(AuthError):
            session.get_token()
        assert session.credential is None

    def test_clear_forces_login(self, session, http):
        """clear() should make the next call log in."""
        session.get_token()
        session.clear()
        session.get_token()
        assert http.post.call_count == 2
