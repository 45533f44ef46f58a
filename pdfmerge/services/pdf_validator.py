# pdfmerge/services/pdf_validator.py
from pathlib import Path
from typing import Union
import structlog

logger = structlog.get_logger()

PDF_MIME_TYPE = "application/pdf"
PDF_SIGNATURE = b"%PDF-"
UTF8_BOM = b"\xef\xbb\xbf"

# Only a byte order mark and whitespace may precede the signature.
SNIFF_WINDOW = 1024


class PdfTypeValidator:
    """Content-based PDF detection, independent of the file extension."""

    def __init__(self, sniff_window: int = SNIFF_WINDOW):
        self.sniff_window = sniff_window

    def detect(self, path: Union[str, Path]) -> str:
        """Return the sniffed MIME type of *path*.

        Raises OSError if the file cannot be read.
        """
        with open(path, "rb") as f:
            header = f.read(self.sniff_window)
        if header.startswith(UTF8_BOM):
            header = header[len(UTF8_BOM):]
        if header.lstrip().startswith(PDF_SIGNATURE):
            return PDF_MIME_TYPE
        return "application/octet-stream"

    def is_pdf(self, path: Union[str, Path]) -> bool:
        try:
            return self.detect(path) == PDF_MIME_TYPE
        except OSError as e:
            logger.error("file_type_detection_failed", path=str(path), error=str(e))
            return False


pdf_type_validator = PdfTypeValidator()
