import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)


class PdfTextError(ValueError):
    pass


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text layer of every page; raises ``PdfTextError`` on unreadable files."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as exc:
        raise PdfTextError(f"Could not read PDF: {exc}") from exc
    text = "\n".join(pages).strip()
    logger.info("Extracted %d chars from %d PDF page(s)", len(text), len(pages))
    return text
