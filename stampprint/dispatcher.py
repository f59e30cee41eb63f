"""StampPrint agent - polls the service for work and prints it."""

import logging
import signal
import time
from collections.abc import Callable
from pathlib import Path

from stampprint.api import (
    ACTION_DOWNLOAD_END,
    ACTION_DOWNLOAD_ERROR,
    ACTION_DOWNLOAD_START,
    ACTION_PRINT_END,
    ServiceClient,
)
from stampprint.config import StampPrintConfig, get_config
from stampprint.errors import InvalidOrderError, StampPrintError
from stampprint.fetcher import DocumentFetcher, scratch_path
from stampprint.identity import get_device_serial
from stampprint.models import InlineCommand, RemoteOrder
from stampprint.printer import CupsPrinter, get_printer, remove_file
from stampprint.session import AuthSession
from stampprint.stamper import MarkPlacer

logger = logging.getLogger(__name__)


class Dispatcher:
    """Print agent that polls the service for work and prints it via CUPS.

    Each cycle:
    1. Obtains a session token (logging in when needed)
    2. Polls for the next unit of work
    3. Prints an inline command as-is, or downloads an order's document and
       prints one stamped copy per serial
    4. Reports the order's progress back to the service

    Cycles run strictly one after another. After an empty poll or a failed
    cycle the agent waits ``idle_interval`` seconds; after work it polls
    again immediately.
    """

    def __init__(
        self,
        config: StampPrintConfig,
        client: ServiceClient,
        fetcher: DocumentFetcher,
        placer: MarkPlacer,
        printer: CupsPrinter,
        device_serial: str,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the dispatcher.

        Args:
            config: Agent configuration.
            client: Service client.
            fetcher: Document fetcher.
            placer: Mark placer.
            printer: Print submitter.
            device_serial: Identity used when polling.
            sleep: Sleep function (injectable for tests).
        """
        self.config = config
        self.client = client
        self.fetcher = fetcher
        self.placer = placer
        self.printer = printer
        self.device_serial = device_serial
        self.sleep = sleep
        self.running = False

    def install_signal_handlers(self) -> None:
        """Stop after the current cycle on SIGINT/SIGTERM."""
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGTERM, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame):
        """Handle shutdown signals gracefully."""
        logger.info("Shutdown signal received")
        self.running = False

    def run_once(self) -> bool:
        """Run a single polling cycle.

        Returns:
            bool: True if the poll returned work, including a malformed
                order that was reported as failed.

        Raises:
            AuthError: If no session token could be obtained.
            requests.RequestException: If the poll request fails.
        """
        try:
            work = self.client.get_next_work(self.device_serial)
        except InvalidOrderError as e:
            logger.error(f"Rejected order from poll: {e}")
            if not e.order_id:
                return False
            self.client.notify(e.order_id, ACTION_DOWNLOAD_ERROR)
            return True

        if work.is_empty:
            logger.debug("No work")
            return False

        if work.command is not None:
            self.process_command(work.command)
        if work.order is not None:
            self.process_order(work.order)
        return True

    def process_command(self, command: InlineCommand) -> bool:
        """Print an inline document without a mark.

        Args:
            command: Command from the poll response.

        Returns:
            bool: True if the document was submitted.
        """
        filename = Path(command.filename).name or "command.pdf"
        path = None
        try:
            payload = command.payload()
            path = scratch_path(Path(self.config.scratch_dir), filename)
            path.write_bytes(payload)
            job_id = self.printer.submit(path)
            logger.info(f"Command {filename} printed as job {job_id}")
            return True
        except (StampPrintError, OSError) as e:
            logger.error(f"Command {filename} failed: {e}")
            return False
        finally:
            if path is not None:
                remove_file(path)

    def process_order(self, order: RemoteOrder) -> bool:
        """Download an order's document and print every copy.

        A failure stops the remaining copies; copies already printed stay
        printed. The downloaded document is removed exactly once.

        Args:
            order: Order from the poll response.

        Returns:
            bool: True if all copies were submitted.
        """
        copies = order.effective_copies
        logger.info(f"Processing order {order.id} (product {order.product_id}, {copies} copies)")

        self.client.notify(order.id, ACTION_DOWNLOAD_START)

        document = None
        try:
            document = self.fetcher.fetch(order.product_id, cover=order.has_cover)
            for index in range(copies):
                self.print_copy(document.path, order.serial_for(index))
        except (StampPrintError, OSError) as e:
            logger.error(f"Order {order.id} failed: {e}")
            self.client.notify(order.id, ACTION_DOWNLOAD_ERROR)
            return False
        except Exception as e:
            logger.exception(f"Unexpected error in order {order.id}: {e}")
            self.client.notify(order.id, ACTION_DOWNLOAD_ERROR)
            return False
        finally:
            if document is not None:
                remove_file(document.path)

        self.client.notify(order.id, ACTION_DOWNLOAD_END)
        self.client.notify(order.id, ACTION_PRINT_END)
        logger.info(f"Order {order.id} printed successfully")
        return True

    def print_copy(self, document_path: Path, mark_text: str) -> str:
        """Stamp one copy and submit it; the stamped file is always removed.

        Returns:
            str: CUPS job id.
        """
        stamped = self.placer.stamp(
            document_path,
            mark_text,
            inset_mm=self.config.mark_inset_mm,
            mark_size_mm=self.config.mark_size_mm,
        )
        try:
            return self.printer.submit(stamped)
        finally:
            remove_file(stamped)

    def run(self) -> None:
        """Run the agent polling loop.

        Runs until self.running is set to False; errors never end it.
        """
        logger.info("Starting StampPrint agent")
        logger.info(f"Server: {self.config.api_url}")
        logger.info(f"Device: {self.device_serial}")
        logger.info(f"Printer: {self.config.printer_name or 'default'}")

        self.running = True

        while self.running:
            try:
                had_work = self.run_once()
            except Exception as e:
                logger.exception(f"Error in agent loop: {e}")
                had_work = False

            if not had_work and self.running:
                self.sleep(self.config.idle_interval)

        logger.info("Agent stopped")

    def test_connection(self) -> dict:
        """Test login and printer availability.

        Returns:
            dict: Test results with 'server', 'printer', 'success' keys.
        """
        results = {
            "server": {"status": "unknown", "message": ""},
            "printer": {"status": "unknown", "message": ""},
            "success": False,
        }

        try:
            self.client.session.get_token()
            results["server"] = {"status": "ok", "message": "Logged in to server"}
        except StampPrintError as e:
            results["server"] = {"status": "error", "message": str(e)}

        if self.printer.is_available:
            status = self.printer.get_printer_status()
            results["printer"] = {"status": "ok", "message": f"Printer status: {status}"}
        else:
            results["printer"] = {"status": "error", "message": "CUPS not available"}

        results["success"] = (
            results["server"]["status"] == "ok" and results["printer"]["status"] == "ok"
        )
        return results


def get_dispatcher(
    config: StampPrintConfig | None = None, device_serial: str | None = None
) -> Dispatcher:
    """Factory function wiring a Dispatcher from configuration.

    Args:
        config: Optional configuration (loaded from file if not provided).
        device_serial: Optional identity (configured or derived if not provided).

    Returns:
        Dispatcher: Agent instance.
    """
    config = config or get_config()
    serial = device_serial or config.device_serial or get_device_serial()
    scratch_dir = Path(config.scratch_dir)

    session = AuthSession(
        config.api_url, config.login, config.password, timeout=config.request_timeout
    )
    client = ServiceClient(session, timeout=config.request_timeout)
    return Dispatcher(
        config=config,
        client=client,
        fetcher=DocumentFetcher(client, scratch_dir, timeout=config.download_timeout),
        placer=MarkPlacer(scratch_dir),
        printer=get_printer(config.printer_name, config.print_options),
        device_serial=serial,
    )
