# pdfmerge/services/pdf_merger.py
from pypdf import PdfReader, PdfWriter
from contextlib import ExitStack
from io import BytesIO
from pathlib import Path
from typing import Sequence, Tuple
import structlog

from pdfmerge.schemas.responses import MergeResult
from pdfmerge.utils.exceptions import PdfMergeError

logger = structlog.get_logger()


class PdfMerger:
    """Concatenates PDF files into one in-memory document."""

    def _merge(self, files: Sequence[Path], add_bookmarks: bool) -> Tuple[bytes, int]:
        """
        Append every page of every file, in order.

        Args:
            files: PDF file paths in merge order
            add_bookmarks: Whether to add an outline item per source

        Returns:
            Tuple of (pdf_bytes, total_pages)

        Raises:
            PdfMergeError: if any source cannot be read or the output
                cannot be written
        """
        writer = PdfWriter()
        total_pages = 0
        buffer = BytesIO()

        # Pages are copied lazily, so every source stays open until the
        # writer has serialized the output.
        with ExitStack() as stack:
            try:
                for idx, path in enumerate(files):
                    logger.debug("processing_pdf", index=idx, path=str(path))

                    stream = stack.enter_context(open(path, "rb"))
                    reader = PdfReader(stream)

                    for page in reader.pages:
                        writer.add_page(page)

                    # Outline targets must already be in the writer.
                    if add_bookmarks and len(reader.pages):
                        writer.add_outline_item(
                            title=Path(path).stem or f"Document {idx + 1}",
                            page_number=total_pages
                        )
                    total_pages += len(reader.pages)

                writer.write(buffer)
            except Exception as e:
                raise PdfMergeError(f"PDF merge failed: {e}") from e

        return buffer.getvalue(), total_pages

    def merge_documents(
        self,
        files: Sequence[Path],
        add_bookmarks: bool = False
    ) -> MergeResult:
        """Merge *files* and report the outcome without raising."""
        if not files:
            return MergeResult.empty("no files to merge")

        try:
            content, total_pages = self._merge(files, add_bookmarks)
        except PdfMergeError as e:
            logger.error("merge_failed", files=len(files), error=str(e))
            return MergeResult.failed(str(e))

        if not content:
            logger.error("merge_returned_empty", files=len(files))
            return MergeResult.failed("merge produced no data")

        logger.info(
            "merge_complete",
            files_merged=len(files),
            total_pages=total_pages,
            output_size=len(content)
        )
        return MergeResult.success(content, total_pages, len(files))

    def merge(self, files: Sequence[Path], add_bookmarks: bool = False) -> bytes:
        """Merge *files* into PDF bytes; ``b""`` when empty or on failure."""
        return self.merge_documents(files, add_bookmarks).content


pdf_merger = PdfMerger()
