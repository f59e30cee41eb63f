"""Bearer-token session for the print-management service."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import requests

from stampprint.errors import AuthError

logger = logging.getLogger(__name__)

# Tokens are treated as valid for a day after login
TOKEN_LIFETIME = 24 * 60 * 60


@dataclass
class Credential:
    """Bearer token and the instant (epoch seconds) it stops being used."""

    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class AuthSession:
    """Obtains and caches a bearer token.

    Login happens lazily: on first use, after expiry, or after a failed
    login cleared the cache. There is no background refresh.
    """

    def __init__(
        self,
        base_url: str,
        login: str,
        password: str,
        http: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 10,
    ):
        """Initialize the session.

        Args:
            base_url: Service base URL.
            login: Device login.
            password: Shared secret.
            http: HTTP session to use (a new one if not provided).
            clock: Returns the current time in epoch seconds.
            timeout: Login request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.login = login
        self.password = password
        self.http = http or requests.Session()
        self.clock = clock
        self.timeout = timeout
        self._credential: Credential | None = None

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def clear(self) -> None:
        """Forget the cached token so the next call logs in again."""
        self._credential = None

    def get_token(self) -> str:
        """Return a valid bearer token, logging in if needed.

        Returns:
            str: Bearer token.

        Raises:
            AuthError: If the session endpoint does not return a token.
        """
        now = self.clock()
        if self._credential is not None and self._credential.is_valid(now):
            return self._credential.token

        try:
            token = self._request_token()
        except AuthError:
            self._credential = None
            raise

        self._credential = Credential(token=token, expires_at=now + TOKEN_LIFETIME)
        logger.info("Obtained new session token")
        return token

    def _request_token(self) -> str:
        try:
            response = self.http.post(
                f"{self.base_url}/session",
                json={"login": self.login, "password": self.password},
                timeout=self.timeout,
            )
        except requests.RequestException as err:
            raise AuthError(f"Login request failed: {err}") from err

        if response.status_code != 200:
            raise AuthError(f"Login failed: {response.status_code}")

        try:
            token = response.json().get("token")
        except (ValueError, AttributeError) as err:
            raise AuthError("Login response is not a JSON object") from err

        if not token:
            raise AuthError("Login response did not contain a token")
        return token
