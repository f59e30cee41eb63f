"""Tests for the command-line interface."""

from unittest.mock import patch

from click.testing import CliRunner
from pypdf import PdfReader

from stampprint import __version__
from stampprint.cli import main
from stampprint.config import StampPrintConfig
from stampprint.printer import PrinterOption


class TestCli:
    """Tests for CLI commands."""

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_start_requires_configuration(self):
        with patch("stampprint.cli.get_config", return_value=StampPrintConfig()):
            result = CliRunner().invoke(main, ["start"])
        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_stamp_writes_destination(self, config, make_pdf, tmp_path):
        source = make_pdf(pages=2)
        destination = tmp_path / "out.pdf"

        with patch("stampprint.cli.get_config", return_value=config):
            result = CliRunner().invoke(
                main, ["stamp", str(source), str(destination), "--mark", "SN-1"]
            )

        assert result.exit_code == 0, result.output
        assert len(PdfReader(destination).pages) == 2

    def test_options_lists_printer_options(self, config):
        options = [PrinterOption("PageSize", "Media Size", "A4", ["Letter", "A4"])]

        with patch("stampprint.cli.get_config", return_value=config), patch(
            "stampprint.printer.CupsPrinter.get_options", return_value=options
        ):
            result = CliRunner().invoke(main, ["options"])

        assert result.exit_code == 0
        assert "PageSize (Media Size): default=A4" in result.output
        assert "Letter A4" in result.output

    def test_configure_saves(self, tmp_path):
        path = tmp_path / "config.json"
        with patch("stampprint.cli.get_config", return_value=StampPrintConfig()), patch(
            "stampprint.config.DEFAULT_CONFIG_FILE", path
        ):
            result = CliRunner().invoke(
                main,
                ["configure", "-u", "https://x/api/", "-l", "dev", "-p", "pw", "-d", "HP"],
            )

        assert result.exit_code == 0, result.output
        loaded = StampPrintConfig.load(path, environ={})
        assert loaded.api_url == "https://x/api"
        assert loaded.printer_name == "HP"
