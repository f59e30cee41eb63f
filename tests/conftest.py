"""Pytest configuration and fixtures."""

import io
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import NameObject, RectangleObject
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from stampprint.config import StampPrintConfig


def build_pdf(
    pages: int = 1,
    pagesize: tuple[float, float] = A4,
    rotate: int = 0,
    boxes: dict[str, tuple[float, float, float, float]] | None = None,
    dark: bool = False,
) -> bytes:
    """Create a PDF in memory.

    Args:
        pages: Number of pages.
        pagesize: Media size in points.
        rotate: /Rotate applied to every page.
        boxes: Extra boxes, e.g. {"/TrimBox": (10, 10, 500, 800)}.
        dark: Fill each page black.

    Returns:
        bytes: PDF data.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=pagesize)
    for number in range(pages):
        if dark:
            c.rect(0, 0, pagesize[0], pagesize[1], stroke=0, fill=1)
        c.drawString(72, 72, f"Page {number + 1}")
        c.showPage()
    c.save()

    if not rotate and not boxes:
        return buffer.getvalue()

    buffer.seek(0)
    writer = PdfWriter(clone_from=PdfReader(buffer))
    for page in writer.pages:
        if rotate:
            page.rotate(rotate)
        for key, value in (boxes or {}).items():
            page[NameObject(key)] = RectangleObject(value)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


@pytest.fixture
def make_pdf(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing generated PDFs into tmp_path."""
    counter = iter(range(1000))

    def _make(**kwargs) -> Path:
        path = tmp_path / f"doc-{next(counter)}.pdf"
        path.write_bytes(build_pdf(**kwargs))
        return path

    return _make


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Scratch directory for downloads and stamped files."""
    return tmp_path / "scratch"


@pytest.fixture
def config(scratch_dir: Path) -> StampPrintConfig:
    """Configured agent settings pointing at a test server."""
    return StampPrintConfig(
        api_url="https://print.example.com/api",
        login="device",
        password="secret",
        device_serial="dc:a6:32:00:00:01abc123",
        printer_name="Test_Printer",
        scratch_dir=str(scratch_dir),
    )


def make_response(status_code: int = 200, json_data=None, content: bytes | None = None, headers=None):
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = json_data
    if content is None:
        content = b"{}" if json_data is not None else b""
    response.content = content
    response.iter_content.return_value = [content[i : i + 4096] for i in range(0, len(content), 4096)]
    return response


@pytest.fixture
def response_factory() -> Callable[..., MagicMock]:
    """Factory for mock HTTP responses."""
    return make_response
