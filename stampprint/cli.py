"""Command-line interface for StampPrint agent."""

import logging
import shutil
import sys
from pathlib import Path

import click

from stampprint import __version__
from stampprint.config import DEFAULT_CONFIG_FILE, StampPrintConfig, get_config
from stampprint.dispatcher import get_dispatcher
from stampprint.errors import StampPrintError
from stampprint.identity import get_device_serial
from stampprint.printer import get_printer
from stampprint.stamper import MarkPlacer


def setup_logging(level: str) -> None:
    """Set up logging configuration.

    Args:
        level: Log level string.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _require_configured(config: StampPrintConfig) -> None:
    if not config.is_configured():
        click.echo("Error: Agent not configured. Run 'stampprint configure' first.")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def main():
    """StampPrint - unattended order printing agent.

    StampPrint polls the print-management service, downloads order
    documents, stamps each copy with its QR serial and prints it.
    """
    pass


@main.command()
@click.option("--api-url", "-u", prompt="Service API URL", help="Base URL of the service API")
@click.option("--login", "-l", prompt="Login", help="Device login")
@click.option("--password", "-p", prompt="Password", hide_input=True, help="Shared secret")
@click.option("--printer", "-d", prompt="CUPS printer", default="", help="CUPS destination name")
def configure(api_url: str, login: str, password: str, printer: str):
    """Configure the StampPrint agent."""
    config = get_config()
    config.api_url = api_url.rstrip("/")
    config.login = login
    config.password = password
    config.printer_name = printer

    config.save()
    click.echo(f"\nConfiguration saved to {DEFAULT_CONFIG_FILE}")
    click.echo("\nRun 'stampprint test' to verify the connection.")
    click.echo("Run 'stampprint start' to start the agent.")


@main.command()
def status():
    """Show current configuration and status."""
    config = get_config()

    click.echo("\n=== StampPrint Status ===\n")

    if not config.is_configured():
        click.echo("Status: NOT CONFIGURED")
        click.echo("\nRun 'stampprint configure' to set up the agent.")
        return

    click.echo(f"API URL: {config.api_url}")
    click.echo(f"Login: {config.login}")
    click.echo(f"Device serial: {config.device_serial or get_device_serial() or '(unknown)'}")
    click.echo(f"Printer: {config.printer_name or '(default)'}")
    click.echo(f"Print options: {' '.join(config.print_options) or '(none)'}")
    click.echo(f"Scratch directory: {config.scratch_dir}")
    click.echo(f"Idle interval: {config.idle_interval}s")
    click.echo(f"Mark: {config.mark_size_mm}mm, inset {config.mark_inset_mm}mm")

    printer = get_printer(config.printer_name)
    click.echo("\n=== Printer Status ===\n")

    if printer.is_available:
        click.echo(f"{config.printer_name or '(default)'}: {printer.get_printer_status()}")
    else:
        click.echo("CUPS not available")


@main.command()
def test():
    """Test connection to server and printer."""
    config = get_config()
    _require_configured(config)

    setup_logging("INFO")

    click.echo("\n=== Testing StampPrint Connection ===\n")

    dispatcher = get_dispatcher(config)
    results = dispatcher.test_connection()

    server = results["server"]
    server_icon = "+" if server["status"] == "ok" else "x"
    click.echo(f"{server_icon} Server: {server['message']}")

    printer = results["printer"]
    printer_icon = "+" if printer["status"] == "ok" else "x"
    click.echo(f"{printer_icon} Printer: {printer['message']}")

    click.echo("")

    if results["success"]:
        click.echo("All tests passed! You can now run 'stampprint start'.")
    else:
        click.echo("Some tests failed. Please check the configuration.")
        sys.exit(1)


@main.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def start(verbose: bool):
    """Start the StampPrint agent.

    The agent polls the service and prints incoming work until stopped
    with Ctrl+C or SIGTERM.
    """
    config = get_config()
    _require_configured(config)

    level = "DEBUG" if verbose else config.log_level
    setup_logging(level)

    click.echo("Starting StampPrint agent... (Ctrl+C to stop)")

    dispatcher = get_dispatcher(config)
    dispatcher.install_signal_handlers()
    dispatcher.run()


@main.command()
def printers():
    """List available printers."""
    printer = get_printer(get_config().printer_name)

    click.echo("\n=== Available Printers ===\n")

    if not printer.is_available:
        click.echo("CUPS not available. Is it installed and running?")
        sys.exit(1)

    printers_list = printer.get_printers()
    if not printers_list:
        click.echo("No printers found.")
        return

    default = printer.get_default_printer()

    for p in printers_list:
        p_status = printer.get_printer_status(p["name"])
        marker = "* " if p["name"] == default else "  "
        click.echo(f"{marker}{p['name']} [{p_status}]")

    click.echo("\n(* = default printer)")


@main.command()
@click.argument("printer_name", required=False)
def options(printer_name: str | None):
    """Show the options a printer supports."""
    config = get_config()
    printer = get_printer(printer_name or config.printer_name)

    try:
        opts = printer.get_options()
    except StampPrintError as e:
        click.echo(f"Error: {e}")
        sys.exit(1)

    for opt in opts:
        click.echo(f"{opt.key} ({opt.description}): default={opt.default}")
        click.echo(f"    {' '.join(opt.choices)}")


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--mark", "-m", required=True, help="Text to encode in the QR mark")
@click.option("--inset", type=float, default=None, help="Inset from the page edge in mm")
@click.option("--size", type=float, default=None, help="QR side length in mm")
def stamp(source: Path, destination: Path, mark: str, inset: float | None, size: float | None):
    """Stamp a local PDF with a QR mark (for checking placement)."""
    config = get_config()
    placer = MarkPlacer(Path(config.scratch_dir))

    try:
        stamped = placer.stamp(
            source,
            mark,
            inset_mm=config.mark_inset_mm if inset is None else inset,
            mark_size_mm=config.mark_size_mm if size is None else size,
        )
    except StampPrintError as e:
        click.echo(f"Error: {e}")
        sys.exit(1)

    shutil.move(stamped, destination)
    click.echo(f"Stamped document written to {destination}")


@main.command("install-service")
@click.option("--user", is_flag=True, help="Install as user service (no sudo required)")
def install_service(user: bool):
    """Install systemd service for auto-start.

    Creates a systemd service file so StampPrint starts automatically
    on boot.
    """
    config = get_config()
    _require_configured(config)

    service_content = f"""[Unit]
Description=StampPrint Order Printing Agent
After=network-online.target cups.service

[Service]
Type=simple
ExecStart={sys.executable} -m stampprint start
Restart=always
RestartSec=10
Environment=HOME={Path.home()}

[Install]
WantedBy={"default.target" if user else "multi-user.target"}
"""

    if user:
        service_dir = Path.home() / ".config" / "systemd" / "user"
        service_path = service_dir / "stampprint.service"
    else:
        service_path = Path("/etc/systemd/system/stampprint.service")

    click.echo("\nService file content:\n")
    click.echo(service_content)

    if user:
        service_dir.mkdir(parents=True, exist_ok=True)
        with open(service_path, "w") as f:
            f.write(service_content)

        click.echo(f"\nService installed to {service_path}")
        click.echo("\nTo enable and start the service:")
        click.echo("  systemctl --user daemon-reload")
        click.echo("  systemctl --user enable --now stampprint")
        click.echo("\nTo view logs:")
        click.echo("  journalctl --user -u stampprint -f")
    else:
        click.echo("\nTo install as system service, run:")
        click.echo(f"  sudo tee {service_path} << 'EOF'")
        click.echo(service_content)
        click.echo("EOF")
        click.echo("\nThen enable and start:")
        click.echo("  sudo systemctl daemon-reload")
        click.echo("  sudo systemctl enable --now stampprint")


if __name__ == "__main__":
    main()
