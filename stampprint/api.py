"""Client for the print-management service API."""

import logging

import requests

from stampprint.errors import AuthError
from stampprint.models import WorkUnit
from stampprint.session import AuthSession

logger = logging.getLogger(__name__)

# Order state transitions reported through /deviceaction
ACTION_DOWNLOAD_START = "downloadstart"
ACTION_DOWNLOAD_END = "downloadend"
ACTION_PRINT_END = "printend"
ACTION_DOWNLOAD_ERROR = "downloaderror"


class ServiceClient:
    """Authenticated calls to the print-management service."""

    def __init__(self, session: AuthSession, timeout: float = 10):
        """Initialize the client.

        Args:
            session: Auth session providing bearer tokens and the HTTP session.
            timeout: Timeout for short API calls in seconds.
        """
        self.session = session
        self.timeout = timeout

    @property
    def http(self) -> requests.Session:
        return self.session.http

    def _headers(self) -> dict:
        """Get API request headers with authentication."""
        return {"Authorization": f"Bearer {self.session.get_token()}"}

    def url(self, path: str) -> str:
        """Build full API URL.

        Args:
            path: API path (e.g., '/nextorder/abc').

        Returns:
            str: Full URL.
        """
        return f"{self.session.base_url}{path}"

    def get_next_work(self, device_serial: str) -> WorkUnit:
        """Poll the service for the next unit of work.

        Args:
            device_serial: This device's identity.

        Returns:
            WorkUnit: Work to perform (empty when there is none).

        Raises:
            AuthError: If no token could be obtained.
            requests.RequestException: If the poll itself fails.
            InvalidOrderError: If the returned order is malformed.
        """
        response = self.http.get(
            self.url(f"/nextorder/{device_serial}"),
            headers=self._headers(),
            timeout=self.timeout,
        )
        if response.status_code == 401:
            # Token rejected before its local expiry; log in again next cycle
            self.session.clear()
        response.raise_for_status()

        if not response.content or not response.content.strip():
            return WorkUnit()
        return WorkUnit.from_response(response.json())

    def open_download(self, product_id: str, cover: bool = False, timeout: float = 30):
        """Start a streamed document download.

        Args:
            product_id: Product reference.
            cover: Request the variant with a cover.
            timeout: Download timeout in seconds.

        Returns:
            requests.Response: Streaming response (caller closes it).
        """
        params = {"capa": "true"} if cover else None
        return self.http.get(
            self.url(f"/devicedownload/{product_id}"),
            headers=self._headers(),
            params=params,
            stream=True,
            timeout=timeout,
        )

    def notify(self, order_id: str, action: str) -> bool:
        """Report an order state transition.

        Best effort: failures are logged and never raised, so a lost
        notification cannot interrupt printing.

        Args:
            order_id: Order identifier.
            action: One of the ACTION_* values.

        Returns:
            bool: True if the service acknowledged the notification.
        """
        try:
            response = self.http.put(
                self.url(f"/deviceaction/{order_id}"),
                headers=self._headers(),
                params={"action": action},
                timeout=self.timeout,
            )
        except (requests.RequestException, AuthError) as e:
            logger.warning(f"Notification {action} for order {order_id} failed: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(
                f"Notification {action} for order {order_id} rejected: {response.status_code}"
            )
            return False

        logger.info(f"Order {order_id}: {action}")
        return True
