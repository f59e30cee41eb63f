"""CUPS printing functionality for StampPrint agent."""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from stampprint.errors import PrintError

logger = logging.getLogger(__name__)

# lp prints e.g. "request id is KM-C751i-123 (1 file(s))"
_REQUEST_ID_RE = re.compile(r"request id is (\S+-\d+)", re.IGNORECASE)

# lpoptions -l prints e.g. "PageSize/Media Size: Letter *A4 Legal"
_OPTION_RE = re.compile(r"^([^/:\s]+)/([^:]*):\s*(.*)$")


@dataclass
class PrinterOption:
    """One option reported by ``lpoptions -l``."""

    key: str
    description: str
    default: str | None = None
    choices: list[str] = field(default_factory=list)


def parse_job_id(output: str) -> str:
    """Extract the job id from lp output, else return the trimmed output."""
    match = _REQUEST_ID_RE.search(output)
    return match.group(1) if match else output.strip()


def parse_options(output: str) -> list[PrinterOption]:
    """Parse ``lpoptions -p NAME -l`` output.

    The choice prefixed with '*' is the default; the marker is stripped.
    Lines that do not look like options are skipped.
    """
    options = []
    for line in output.splitlines():
        match = _OPTION_RE.match(line.strip())
        if not match:
            continue
        key, description, values = match.groups()
        default = None
        choices = []
        for value in values.split():
            if value.startswith("*"):
                value = value[1:]
                default = value
            choices.append(value)
        options.append(
            PrinterOption(key=key, description=description.strip(), default=default, choices=choices)
        )
    return options


def remove_file(path: Path) -> None:
    """Delete a temporary file, logging instead of raising on failure."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to delete {path}: {e}")


class CupsPrinter:
    """Submits documents to CUPS through the ``lp`` command line tools."""

    def __init__(
        self,
        printer_name: str,
        options: list[str] | None = None,
        lp_path: str = "lp",
        timeout: float = 30,
    ):
        """Initialize the printer.

        Args:
            printer_name: CUPS destination.
            options: Default ``lp`` arguments, e.g. ["-o", "media=A4"].
            lp_path: lp executable.
            timeout: Seconds before a CUPS command is abandoned.
        """
        self.printer_name = printer_name
        self.options = list(options or [])
        self.lp_path = lp_path
        self.timeout = timeout

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as err:
            raise PrintError(f"{cmd[0]} timed out") from err
        except FileNotFoundError as err:
            raise PrintError(f"{cmd[0]} command not found - is CUPS installed?") from err

    @property
    def is_available(self) -> bool:
        """Check if the lp command is available.

        Returns:
            bool: True if lp command exists.
        """
        try:
            result = subprocess.run(["which", self.lp_path], capture_output=True, text=True, timeout=5)
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def submit(self, path: Path, printer_name: str | None = None, options: list[str] | None = None) -> str:
        """Print a file and delete it afterwards.

        The file is removed whether or not the submission succeeds.

        Args:
            path: Document to print (a temporary file owned by the caller).
            printer_name: Override printer name.
            options: Override default lp arguments.

        Returns:
            str: CUPS job id, or the raw lp output if it has no job id.

        Raises:
            PrintError: If lp is missing, times out or exits non-zero.
        """
        name = printer_name or self.printer_name
        opts = self.options if options is None else options
        cmd = [self.lp_path]
        if name:
            cmd.extend(["-d", name])
        cmd.extend([*opts, str(path)])

        try:
            logger.debug(f"Print command: {' '.join(cmd)}")
            result = self._run(cmd)
            if result.returncode != 0:
                raise PrintError(f"lp command failed: {result.stderr.strip()}")

            job_id = parse_job_id(result.stdout)
            logger.info(f"Print job {job_id} submitted to {name or 'default printer'}")
            return job_id
        finally:
            remove_file(path)

    def get_printers(self) -> list[dict]:
        """Get list of available printers.

        Returns:
            list[dict]: List of printer info dicts with 'name' and 'enabled'.
        """
        try:
            result = self._run(["lpstat", "-p"])
        except PrintError:
            return []
        printers = []
        for line in result.stdout.strip().split("\n"):
            if line.startswith("printer "):
                parts = line.split()
                if len(parts) >= 2:
                    printers.append({"name": parts[1], "enabled": "disabled" not in line})
        return printers

    def get_default_printer(self) -> str | None:
        """Get the default printer name.

        Returns:
            str | None: Default printer name or None.
        """
        try:
            result = self._run(["lpstat", "-d"])
        except PrintError:
            return None
        if "system default destination:" in result.stdout:
            return result.stdout.split(":")[-1].strip()
        return None

    def get_printer_status(self, printer_name: str | None = None) -> str:
        """Get status of a specific printer.

        Args:
            printer_name: Printer name (None = configured printer).

        Returns:
            str: Status string ('ready', 'offline', 'busy', 'unknown').
        """
        name = printer_name or self.printer_name
        if not name:
            return "unknown"
        try:
            result = self._run(["lpstat", "-p", name])
        except PrintError:
            return "unknown"
        if result.returncode != 0:
            return "offline"

        output = result.stdout.lower()
        if "disabled" in output:
            return "offline"
        if "now printing" in output:
            return "busy"
        if "idle" in output:
            return "ready"
        return "unknown"

    def get_options(self, printer_name: str | None = None) -> list[PrinterOption]:
        """List the options a printer's driver supports.

        Raises:
            PrintError: If lpoptions fails.
        """
        name = printer_name or self.printer_name
        cmd = ["lpoptions", "-l"]
        if name:
            cmd[1:1] = ["-p", name]
        result = self._run(cmd)
        if result.returncode != 0:
            raise PrintError(f"lpoptions failed: {result.stderr.strip()}")
        return parse_options(result.stdout)


def get_printer(printer_name: str, options: list[str] | None = None) -> CupsPrinter:
    """Factory function for CupsPrinter.

    Args:
        printer_name: CUPS destination.
        options: Default lp arguments.

    Returns:
        CupsPrinter: Printer instance.
    """
    return CupsPrinter(printer_name, options)
