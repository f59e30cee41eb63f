"""Configuration management for StampPrint agent."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "stampprint"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_SCRATCH_DIR = "/tmp/pdfdownload"

# Environment variables that override values from the config file
ENV_OVERRIDES = {
    "STAMPPRINT_API_URL": "api_url",
    "STAMPPRINT_LOGIN": "login",
    "STAMPPRINT_PASSWORD": "password",
    "STAMPPRINT_PRINTER": "printer_name",
    "STAMPPRINT_DEVICE_SERIAL": "device_serial",
    "STAMPPRINT_SCRATCH_DIR": "scratch_dir",
}


def _default_print_options() -> list[str]:
    return ["-o", "media=A4"]


@dataclass
class StampPrintConfig:
    """Configuration for the StampPrint agent.

    Connection settings:
        api_url: Base URL of the print-management service.
        login: Login sent to the session endpoint.
        password: Shared secret sent to the session endpoint.
        device_serial: Device identity (empty = derive from hardware).

    Printing settings:
        printer_name: CUPS destination passed to ``lp -d``.
        print_options: Extra ``lp`` arguments placed before the file path.
        mark_inset_mm: Distance of the QR mark from the visible page edge.
        mark_size_mm: Side length of the QR mark.

    Operational settings:
        scratch_dir: Directory for downloaded and stamped documents.
        idle_interval: Seconds to wait after an empty poll or a failed cycle.
        download_timeout: Seconds before a document download is abandoned.
        request_timeout: Seconds for the short API calls.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """

    api_url: str = ""
    login: str = ""
    password: str = ""
    device_serial: str = ""
    printer_name: str = ""
    print_options: list[str] = field(default_factory=_default_print_options)
    mark_inset_mm: float = 6.0
    mark_size_mm: float = 18.0
    scratch_dir: str = DEFAULT_SCRATCH_DIR
    idle_interval: float = 15.0
    download_timeout: float = 30.0
    request_timeout: float = 10.0
    log_level: str = "INFO"

    def is_configured(self) -> bool:
        """Check if the agent has been configured.

        Returns:
            bool: True if api_url, login and password are set.
        """
        return bool(self.api_url and self.login and self.password)

    def save(self, config_path: Path | None = None) -> None:
        """Save config to file.

        Args:
            config_path: Path to config file (default: ~/.config/stampprint/config.json).
        """
        path = config_path or DEFAULT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

        # Secure the config file (contains the shared secret)
        os.chmod(path, 0o600)

    def apply_environment(self, environ: dict | None = None) -> None:
        """Overlay values from STAMPPRINT_* environment variables.

        Args:
            environ: Mapping to read from (default: os.environ).
        """
        env = os.environ if environ is None else environ
        for var, attr in ENV_OVERRIDES.items():
            value = env.get(var)
            if value:
                setattr(self, attr, value)

    @classmethod
    def load(cls, config_path: Path | None = None, environ: dict | None = None) -> "StampPrintConfig":
        """Load configuration from file, then apply environment overrides.

        Unknown keys in the file are ignored so older agents can read
        newer config files.

        Args:
            config_path: Path to config file.
            environ: Environment mapping (default: os.environ).

        Returns:
            StampPrintConfig: Loaded configuration or default.
        """
        path = config_path or DEFAULT_CONFIG_FILE
        config = cls()

        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
                config = cls(**known)
            except (json.JSONDecodeError, TypeError, AttributeError) as e:
                logger.warning(f"Error loading config {path}: {e}")

        config.apply_environment(environ)
        return config


def get_config(config_path: Path | None = None) -> StampPrintConfig:
    """Get the current configuration.

    Args:
        config_path: Optional custom config path.

    Returns:
        StampPrintConfig: Current configuration.
    """
    return StampPrintConfig.load(config_path)
