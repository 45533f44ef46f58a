# pdfmerge/services/file_resolver.py
from pathlib import Path
from typing import Callable, Iterable, List, Optional
import structlog

from pdfmerge.schemas.records import FieldRow, RecordContext
from pdfmerge.services.pdf_validator import PdfTypeValidator, pdf_type_validator
from pdfmerge.utils.exceptions import FileResolutionError

logger = structlog.get_logger()

PATH_SEPARATOR = ";"

PathToFile = Callable[[str, RecordContext], Optional[Path]]


class FileResolver:
    """Turns stored path lists into validated PDF files."""

    def __init__(
        self,
        path_to_file: PathToFile,
        validator: PdfTypeValidator = pdf_type_validator
    ):
        self.path_to_file = path_to_file
        self.validator = validator

    @staticmethod
    def split(raw_value: Optional[str]) -> List[str]:
        """Split a semicolon-delimited value into trimmed, non-empty paths."""
        if raw_value is None:
            return []
        return [
            segment.strip()
            for segment in raw_value.split(PATH_SEPARATOR)
            if segment.strip()
        ]

    def collect(self, row: FieldRow, field_ids: Iterable[str]) -> List[str]:
        """Gather the paths of every field, in field order."""
        paths: List[str] = []
        for field_id in field_ids:
            value = row.get(field_id)
            if value is None:
                logger.debug("field_empty", record_id=row.record_id, field=field_id)
                continue
            paths.extend(self.split(value))
        return paths

    def _resolve_one(self, path: str, context: RecordContext) -> Optional[Path]:
        try:
            file = self.path_to_file(path, context)
        except (FileResolutionError, OSError, ValueError) as e:
            logger.error(
                "file_resolution_failed",
                path=path,
                record_id=context.record_id,
                error=str(e)
            )
            return None

        if file is None or not file.is_file():
            logger.warning("file_not_found", path=path, record_id=context.record_id)
            return None
        return file

    def to_files(self, paths: Iterable[str], context: RecordContext) -> List[Path]:
        """Resolve paths to existing PDF files, dropping anything else."""
        files: List[Path] = []
        for path in paths:
            file = self._resolve_one(path, context)
            if file is None:
                continue
            if not self.validator.is_pdf(file):
                logger.warning("file_not_pdf", path=str(file), record_id=context.record_id)
                continue
            files.append(file)
        return files
