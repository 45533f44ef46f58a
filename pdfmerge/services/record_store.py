# pdfmerge/services/record_store.py
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Protocol
import structlog

from pdfmerge.schemas.records import FieldRow
from pdfmerge.utils.exceptions import PersistenceError, RecordNotFoundError

logger = structlog.get_logger()

SAFE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


def validate_identifier(value: str) -> str:
    """Reject form and record ids that are unusable as path components."""
    if not SAFE_ID_PATTERN.match(value or "") or value in (".", ".."):
        raise ValueError(f"Invalid identifier: {value!r}")
    return value


class RecordStore(Protocol):
    """Form-backed record storage owned by the host."""

    def table_name(self, form_id: str) -> str:
        ...

    def load_row(self, record_id: str, form_id: str) -> FieldRow:
        ...

    def store_field(self, form_id: str, record_id: str, field_id: str, value: str) -> None:
        ...


class JsonRecordStore:
    """Keeps each record as ``<data_dir>/<form_id>/<record_id>.json``."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def table_name(self, form_id: str) -> str:
        return form_id

    def _record_path(self, form_id: str, record_id: str) -> Path:
        validate_identifier(form_id)
        validate_identifier(record_id)
        return self.data_dir / form_id / f"{record_id}.json"

    def _read(self, path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Record file is not an object: {path}")
        return data

    def load_row(self, record_id: str, form_id: str) -> FieldRow:
        path = self._record_path(form_id, record_id)
        if not path.exists():
            raise RecordNotFoundError(form_id, record_id)
        data = self._read(path)
        return FieldRow.from_mapping(data, record_id=record_id)

    def save_row(self, form_id: str, record_id: str, values: Dict[str, Any]) -> None:
        """Create or replace a whole record."""
        path = self._record_path(form_id, record_id)
        data = {"id": record_id}
        data.update(values)
        self._write(path, data)

    def store_field(self, form_id: str, record_id: str, field_id: str, value: str) -> None:
        """Set one field, creating the record if needed."""
        try:
            path = self._record_path(form_id, record_id)
            data = self._read(path) if path.exists() else {"id": record_id}
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot update record {record_id}: {e}") from e
        data[field_id] = value
        self._write(path, data)
        logger.info("record_updated", form_id=form_id, record_id=record_id, field=field_id)

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Cannot write record {path.name}: {e}") from e
