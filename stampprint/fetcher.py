"""Document download to scratch storage."""

import logging
import re
import time
import uuid
from pathlib import Path
from urllib.parse import unquote

import requests

from stampprint.api import ServiceClient
from stampprint.errors import DownloadError
from stampprint.models import FetchedDocument

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"

_DISPOSITION_RE = re.compile(r"""filename\*?=(?:UTF-8''|")?([^";]+)""", re.IGNORECASE)


def filename_from_disposition(disposition: str | None) -> str | None:
    """Extract the filename from a Content-Disposition header.

    Handles quoted, bare and RFC 5987 (``filename*=UTF-8''...``) values.
    Directory components are dropped.

    Args:
        disposition: Header value.

    Returns:
        str | None: Filename, or None if the header carries none.
    """
    if not disposition:
        return None
    match = _DISPOSITION_RE.search(disposition)
    if not match:
        return None
    name = Path(unquote(match.group(1).replace('"', "")).strip()).name
    return name or None


def scratch_path(scratch_dir: Path, filename: str) -> Path:
    """Unique path for a scratch file, creating the directory if needed."""
    scratch_dir.mkdir(parents=True, exist_ok=True)
    return scratch_dir / f"{uuid.uuid4()}-{filename}"


def is_pdf(path: Path) -> bool:
    """Check the file starts with the PDF magic marker."""
    with open(path, "rb") as f:
        return f.read(len(PDF_MAGIC)) == PDF_MAGIC


class DocumentFetcher:
    """Downloads order documents into the scratch directory."""

    def __init__(self, client: ServiceClient, scratch_dir: Path, timeout: float = 30):
        """Initialize the fetcher.

        Args:
            client: Service client.
            scratch_dir: Directory for downloaded files.
            timeout: Download timeout in seconds.
        """
        self.client = client
        self.scratch_dir = Path(scratch_dir)
        self.timeout = timeout

    def fetch(self, product_id: str, cover: bool = False) -> FetchedDocument:
        """Download a product's document.

        Args:
            product_id: Product reference.
            cover: Download the variant with a cover.

        Returns:
            FetchedDocument: Local validated PDF. The caller deletes it.

        Raises:
            DownloadError: On network failure, non-200 status or non-PDF content.
        """
        try:
            response = self.client.open_download(product_id, cover=cover, timeout=self.timeout)
        except requests.RequestException as err:
            raise DownloadError(f"Download of {product_id} failed: {err}") from err

        with response:
            if response.status_code != 200:
                raise DownloadError(
                    f"Download of {product_id} failed: HTTP {response.status_code}"
                )

            filename = filename_from_disposition(
                response.headers.get("content-disposition")
            ) or f"file-{int(time.time() * 1000)}.pdf"
            out_path = scratch_path(self.scratch_dir, filename)

            try:
                with open(out_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        if chunk:
                            f.write(chunk)
                if not is_pdf(out_path):
                    raise DownloadError(f"Downloaded file is not a PDF: {filename}")
            except requests.RequestException as err:
                out_path.unlink(missing_ok=True)
                raise DownloadError(f"Download of {product_id} interrupted: {err}") from err
            except DownloadError:
                out_path.unlink(missing_ok=True)
                raise

        logger.info(f"Downloaded {product_id} to {out_path}")
        return FetchedDocument(path=out_path, filename=filename)
