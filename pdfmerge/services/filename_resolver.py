# pdfmerge/services/filename_resolver.py
import re
import time
from typing import Callable, Mapping, Optional, Union
import structlog

from pdfmerge.schemas.records import FieldRow

logger = structlog.get_logger()

PDF_SUFFIX = ".pdf"
DEFAULT_PREFIX = "merged_"
MAX_NAME_LENGTH = 100

PLACEHOLDER_PATTERN = re.compile(r"\{([^}]+)\}")
UNSAFE_CHARS_PATTERN = re.compile(r'[<>:"/\\|?*]')

RecordSource = Union[FieldRow, Mapping[str, object], Callable[[], Optional[FieldRow]]]


def strip_pdf_suffix(name: str) -> str:
    if name.lower().endswith(PDF_SUFFIX):
        return name[:-len(PDF_SUFFIX)]
    return name


def ensure_pdf_suffix(name: str) -> str:
    if not name.lower().endswith(PDF_SUFFIX):
        name += PDF_SUFFIX
    return name


def sanitize(name: Optional[str]) -> str:
    """Make *name* safe as a file name, without extension."""
    if name is None:
        return ""
    sanitized = UNSAFE_CHARS_PATTERN.sub("_", strip_pdf_suffix(name))
    return sanitized[:MAX_NAME_LENGTH]


def looks_like_file_reference(value: str) -> bool:
    return "/" in value or "\\" in value or value.endswith(PDF_SUFFIX)


def file_reference_name(value: str) -> str:
    """Name part of the first file in a stored path list.

    Only the trailing ``.pdf`` is removed. Directory parts stay in the
    name and become underscores when sanitized, so ``Invoice/Q1.pdf``
    resolves to ``Invoice_Q1``; a deep upload path such as
    ``uploads/app/rec/scan.pdf`` therefore yields ``uploads_app_rec_scan``
    rather than just ``scan``.
    """
    first = value.split(";")[0].strip()
    return strip_pdf_suffix(first)


class FilenameResolver:
    """Computes the output name of a merged PDF."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def default_name(self, timestamp_ms: Optional[int] = None) -> str:
        if timestamp_ms is None:
            timestamp_ms = int(self.clock() * 1000)
        return f"{DEFAULT_PREFIX}{timestamp_ms}"

    @staticmethod
    def _load_row(record: Optional[RecordSource]) -> Optional[FieldRow]:
        if record is None or isinstance(record, FieldRow):
            return record
        if isinstance(record, Mapping):
            return FieldRow.from_mapping(record)
        return record()

    @staticmethod
    def _field_value(row: FieldRow, field_id: str) -> Optional[str]:
        value = row.get(field_id)
        if not value:
            return None
        if looks_like_file_reference(value):
            return file_reference_name(value)
        return value

    def _substitute(self, template: str, row: FieldRow) -> str:
        def replace(match: "re.Match[str]") -> str:
            value = self._field_value(row, match.group(1))
            if value:
                return sanitize(value)
            return row.record_id

        return PLACEHOLDER_PATTERN.sub(replace, template)

    def resolve(
        self,
        template: Optional[str],
        record: Optional[RecordSource] = None,
        timestamp_ms: Optional[int] = None
    ) -> str:
        """
        Resolve the output filename for a merge.

        Args:
            template: Static name, ``{field}`` template or None for the
                timestamp default
            record: Row the placeholders are resolved against, or a
                loader returning it
            timestamp_ms: Epoch milliseconds for the default name

        Returns:
            A sanitized name ending in exactly one ``.pdf``
        """
        if template is None or not template.strip():
            base = self.default_name(timestamp_ms)
        elif "{" not in template:
            base = template.strip()
        else:
            try:
                row = self._load_row(record)
                if row is None:
                    logger.warning("filename_record_missing", template=template)
                    return ensure_pdf_suffix(template)
                base = self._substitute(template, row)
            except Exception as e:
                logger.error(
                    "filename_resolution_failed",
                    template=template,
                    error=str(e)
                )
                return ensure_pdf_suffix(template)

        name = sanitize(base)
        if not name.strip():
            name = self.default_name(timestamp_ms)
        return ensure_pdf_suffix(name)


filename_resolver = FilenameResolver()
