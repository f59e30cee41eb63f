"""QR verification mark stamping for PDF documents.

The mark goes on the last page, in the bottom-right corner of the visible
area as the reader sees it, on an opaque white backing so it stays
scannable over dark artwork.
"""

import io
import logging
import shutil
from pathlib import Path

import qrcode
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from qrcode.constants import ERROR_CORRECT_L
from reportlab.lib.colors import white
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from stampprint.errors import MarkError
from stampprint.fetcher import scratch_path
from stampprint.geometry import (
    BOX_PRIORITY,
    Box,
    Placement,
    compute_placement,
    inset_points,
    mm_to_pt,
    pick_visible_box,
)

logger = logging.getLogger(__name__)

# White margin around the code, also the code's quiet zone on dark pages
BACKING_PADDING_MM = 1.5


def generate_qr_png(data: str, box_size: int = 10) -> bytes:
    """Render data as a QR code PNG.

    Low error correction keeps short serials at the smallest version.

    Args:
        data: Text to encode.
        box_size: Pixels per module.

    Returns:
        bytes: PNG image data.
    """
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_L, box_size=box_size, border=1)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def _to_box(raw) -> Box:
    x1, y1, x2, y2 = (float(v) for v in raw)
    return Box(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))


def declared_boxes(page: PageObject) -> dict[str, Box]:
    """Boxes present in the page dictionary (inherited ones included).

    Returns:
        dict[str, Box]: Keyed by 'trim', 'crop', 'bleed', 'art', 'media'.
    """
    boxes = {}
    for name in BOX_PRIORITY:
        key = f"/{name.capitalize()}Box"
        if key not in page:
            continue
        try:
            boxes[name] = _to_box(page[key])
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed {key}: {e}")
    return boxes


def visible_box(page: PageObject) -> Box:
    """Visible area of a page, falling back to A4 when nothing is declared."""
    return pick_visible_box(declared_boxes(page), A4)


def draw_mark_overlay(
    page_box: Box, placement: Placement, size: float, padding: float, qr_png: bytes
) -> PageObject:
    """Build a single-page overlay holding the backed QR mark.

    The overlay shares the target page's coordinate space, so it can be
    merged without transformation.

    Args:
        page_box: Extent of the target page.
        placement: Mark position and rotation.
        size: Mark side length in points.
        padding: Backing margin in points.
        qr_png: QR code image.

    Returns:
        PageObject: Overlay page.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(max(page_box.right, 1), max(page_box.top, 1)))

    half = size / 2
    c.saveState()
    c.translate(placement.x + half, placement.y + half)
    c.rotate(placement.rotate)
    c.setFillColor(white)
    c.rect(-half - padding, -half - padding, size + 2 * padding, size + 2 * padding, stroke=0, fill=1)
    c.drawImage(ImageReader(io.BytesIO(qr_png)), -half, -half, width=size, height=size)
    c.restoreState()
    c.showPage()
    c.save()

    buffer.seek(0)
    return PdfReader(buffer).pages[0]


class MarkPlacer:
    """Stamps documents with a per-copy QR mark."""

    def __init__(self, scratch_dir: Path):
        """Initialize the placer.

        Args:
            scratch_dir: Directory for stamped output files.
        """
        self.scratch_dir = Path(scratch_dir)

    def stamp(
        self, document_path: Path, mark_text: str, inset_mm: float = 6, mark_size_mm: float = 18
    ) -> Path:
        """Write a stamped copy of a document.

        Args:
            document_path: Source PDF.
            mark_text: Text to encode; empty copies the document unchanged.
            inset_mm: Distance from the visible edges (at least 2 mm).
            mark_size_mm: QR side length.

        Returns:
            Path: New file in the scratch directory. The caller deletes it.

        Raises:
            MarkError: If the document cannot be read, has no pages or the
                mark cannot be rendered.
        """
        document_path = Path(document_path)
        out_path = scratch_path(self.scratch_dir, f"stamped-{document_path.name}")

        if not mark_text:
            shutil.copyfile(document_path, out_path)
            return out_path

        try:
            self._write_stamped(document_path, out_path, mark_text, inset_mm, mark_size_mm)
        except MarkError:
            out_path.unlink(missing_ok=True)
            raise
        except PdfReadError as err:
            out_path.unlink(missing_ok=True)
            raise MarkError(f"Cannot read {document_path}: {err}") from err
        except Exception as err:
            # Library failures surface as plain ValueError/KeyError/TypeError
            out_path.unlink(missing_ok=True)
            raise MarkError(f"Cannot stamp {document_path.name} with '{mark_text[:40]}': {err}") from err

        logger.info(f"Stamped {document_path.name} with '{mark_text}'")
        return out_path

    def _write_stamped(
        self, document_path: Path, out_path: Path, mark_text: str, inset_mm: float, mark_size_mm: float
    ) -> None:
        reader = PdfReader(document_path)
        if len(reader.pages) == 0:
            raise MarkError(f"Document has no pages: {document_path}")

        writer = PdfWriter(clone_from=reader)
        page = writer.pages[-1]

        box = visible_box(page)
        size = mm_to_pt(mark_size_mm)
        placement = compute_placement(box, page.rotation, size, inset_points(inset_mm))
        logger.debug(f"Mark '{mark_text}' at {placement} in {box}")

        page_extent = pick_visible_box({"media": declared_boxes(page).get("media")}, A4)
        overlay = draw_mark_overlay(
            page_extent,
            placement,
            size,
            mm_to_pt(BACKING_PADDING_MM),
            generate_qr_png(mark_text),
        )
        page.merge_page(overlay)

        with open(out_path, "wb") as f:
            writer.write(f)
