# pdfmerge/utils/file_handler.py
from pathlib import Path
from typing import Optional
import structlog

from pdfmerge.schemas.records import RecordContext
from pdfmerge.services.record_store import RecordStore, validate_identifier
from pdfmerge.utils.exceptions import FileResolutionError, PersistenceError

logger = structlog.get_logger()


class StorageFileHandler:
    """Maps stored upload paths to files and writes merged output."""

    def __init__(self, upload_root: Path, record_store: RecordStore):
        self.upload_root = Path(upload_root).resolve()
        self.record_store = record_store

    def upload_path(self, table_name: str, record_id: str) -> Path:
        """Directory holding the uploads of one record."""
        path = (self.upload_root / table_name / record_id).resolve()
        self._check_inside_root(path, f"{table_name}/{record_id}")
        return path

    def _check_inside_root(self, path: Path, original: str) -> None:
        if path != self.upload_root and self.upload_root not in path.parents:
            raise FileResolutionError(f"Path escapes upload root: {original}")

    def path_to_file(self, path: str, context: RecordContext) -> Optional[Path]:
        """Resolve a stored path for the record in *context*.

        Relative paths live in the record's upload directory; absolute
        paths must already point inside the upload root.
        """
        if not path:
            return None

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.upload_path(context.table_name, context.record_id) / candidate
        candidate = candidate.resolve()
        self._check_inside_root(candidate, path)

        if not candidate.exists():
            return None
        return candidate

    def persist(
        self,
        filename: str,
        content: bytes,
        record_id: str,
        output_field: str,
        form_id: str
    ) -> Path:
        """Store *content* as *filename* and record it in *output_field*.

        The file is removed again if the record cannot be updated.
        """
        try:
            validate_identifier(form_id)
            validate_identifier(record_id)
        except ValueError as e:
            raise PersistenceError(f"Cannot store {filename}: {e}") from e

        table_name = self.record_store.table_name(form_id)
        try:
            target_dir = self.upload_path(table_name, record_id)
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / filename
            self._check_inside_root(target.resolve(), filename)
            with open(target, "wb") as f:
                f.write(content)
        except (OSError, FileResolutionError) as e:
            raise PersistenceError(f"Cannot write {filename}: {e}") from e

        logger.info("file_saved", path=str(target), size=len(content))
        try:
            self.record_store.store_field(form_id, record_id, output_field, filename)
        except PersistenceError:
            self._remove(target)
            raise
        return target

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
            logger.warning("file_removed", path=str(path))
        except OSError as e:
            logger.error("file_remove_failed", path=str(path), error=str(e))
