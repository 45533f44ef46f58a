# pdfmerge/services/merge_pipeline.py
from typing import Iterable, List, Optional, Sequence, Tuple
import structlog

from pdfmerge.schemas.config import DatalistActionConfig, MergeToolConfig
from pdfmerge.schemas.records import FieldRow, RecordContext
from pdfmerge.schemas.responses import DownloadPayload, MergeResult
from pdfmerge.services.archive_namer import build_zip
from pdfmerge.services.file_resolver import FileResolver
from pdfmerge.services.filename_resolver import FilenameResolver, filename_resolver
from pdfmerge.services.pdf_merger import PdfMerger, pdf_merger
from pdfmerge.services.record_store import RecordStore
from pdfmerge.utils.exceptions import PersistenceError, RecordNotFoundError
from pdfmerge.utils.file_handler import StorageFileHandler

logger = structlog.get_logger()

PDF_CONTENT_TYPE = "application/pdf"
ZIP_CONTENT_TYPE = "application/zip"


class MergePipeline:
    """Collects, validates, merges and names PDFs for one request."""

    def __init__(
        self,
        record_store: RecordStore,
        storage: StorageFileHandler,
        merger: PdfMerger = pdf_merger,
        namer: FilenameResolver = filename_resolver,
        resolver: Optional[FileResolver] = None
    ):
        self.record_store = record_store
        self.storage = storage
        self.merger = merger
        self.namer = namer
        self.resolver = resolver or FileResolver(storage.path_to_file)

    def _context(self, record_id: str, form_id: str) -> RecordContext:
        return RecordContext(
            record_id=record_id,
            form_id=form_id,
            table_name=self.record_store.table_name(form_id)
        )

    def _load_row(self, record_id: str, form_id: str) -> Optional[FieldRow]:
        try:
            return self.record_store.load_row(record_id, form_id)
        except RecordNotFoundError:
            logger.warning("record_not_found", record_id=record_id, form_id=form_id)
        except (OSError, ValueError) as e:
            logger.error("record_load_failed", record_id=record_id, form_id=form_id, error=str(e))
        return None

    def merge_record(
        self,
        row: FieldRow,
        field_ids: Sequence[str],
        context: RecordContext,
        add_bookmarks: bool = False
    ) -> MergeResult:
        """Merge the PDFs referenced by *field_ids* of one record."""
        paths = self.resolver.collect(row, field_ids)
        if not paths:
            logger.info("no_pdf_paths", record_id=row.record_id, fields=list(field_ids))
            return MergeResult.empty("no file paths in the configured fields")

        files = self.resolver.to_files(paths, context)
        if not files:
            logger.warning("no_valid_pdf_files", record_id=row.record_id, paths=len(paths))
            return MergeResult.empty("no valid PDF files to merge")

        if len(files) < len(paths):
            logger.warning(
                "pdf_files_skipped",
                record_id=row.record_id,
                skipped=len(paths) - len(files)
            )

        return self.merger.merge_documents(files, add_bookmarks)

    def save(self, config: MergeToolConfig, record_id: str) -> MergeResult:
        """Merge a record's PDF fields and store the result in its output field."""
        missing = config.missing_options
        if missing or not record_id:
            logger.warning("merge_config_missing", missing=missing, record_id=record_id)
            return MergeResult.empty("missing configuration: " + ", ".join(missing or ["record_id"]))

        row = self._load_row(record_id, config.form_def_id)
        if row is None:
            return MergeResult.empty(f"source record {record_id} not found")

        context = self._context(record_id, config.form_def_id)
        result = self.merge_record(row, config.fields, context, config.add_bookmarks)
        if not result.ok:
            return result

        filename = self.namer.resolve(
            config.rename_file,
            lambda: self.record_store.load_row(record_id, config.output_form_def_id)
        )

        try:
            self.storage.persist(
                filename,
                result.content,
                record_id,
                config.output_file_field_id,
                config.output_form_def_id
            )
        except PersistenceError as e:
            logger.error("merged_pdf_save_failed", record_id=record_id, filename=filename, error=str(e))
            return MergeResult.failed(f"could not save {filename}")

        logger.info("merged_pdf_saved", record_id=record_id, filename=filename)
        return result.model_copy(update={"filename": filename})

    def _download_filename(self, config: DatalistActionConfig, row: FieldRow) -> str:
        template = config.filename_template
        if template is None:
            template = row.record_id
        return self.namer.resolve(template, row)

    def _merge_for_download(
        self,
        config: DatalistActionConfig,
        record_id: str
    ) -> Optional[Tuple[str, MergeResult]]:
        row = self._load_row(record_id, config.form_def_id)
        if row is None:
            return None

        context = self._context(record_id, config.form_def_id)
        result = self.merge_record(row, [config.field_id], context, config.add_bookmarks)
        if not result.ok:
            logger.warning(
                "download_record_skipped",
                record_id=record_id,
                status=result.status.value,
                reason=result.reason
            )
            return None
        return self._download_filename(config, row), result

    def download(
        self,
        config: DatalistActionConfig,
        record_ids: Iterable[str]
    ) -> Optional[DownloadPayload]:
        """Merge each record's PDFs: one PDF for one id, a zip for several."""
        record_ids = [rid for rid in record_ids if rid]
        if not record_ids:
            return None
        if not config.form_def_id or not config.field_id:
            logger.warning("download_config_missing", form_def_id=config.form_def_id, field_id=config.field_id)
            return None

        if len(record_ids) == 1:
            merged = self._merge_for_download(config, record_ids[0])
            if merged is None:
                return None
            filename, result = merged
            return DownloadPayload(
                content=result.content,
                filename=filename,
                content_type=PDF_CONTENT_TYPE
            )

        entries: List[Tuple[str, bytes]] = []
        for record_id in record_ids:
            merged = self._merge_for_download(config, record_id)
            if merged is not None:
                filename, result = merged
                entries.append((filename, result.content))

        if not entries:
            logger.warning("download_nothing_merged", records=len(record_ids))
            return None

        try:
            content = build_zip(entries)
        except (OSError, ValueError) as e:
            logger.error("zip_build_failed", records=len(record_ids), error=str(e))
            return None

        return DownloadPayload(
            content=content,
            filename=config.archive_name,
            content_type=ZIP_CONTENT_TYPE,
            files_count=len(entries)
        )
