# pdfmerge/api/routes/merge.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool
from urllib.parse import quote
import time
import structlog

from pdfmerge.api.dependencies import get_pipeline, get_settings_dependency, limiter
from pdfmerge.config import Settings, get_settings
from pdfmerge.schemas.config import MergeToolConfig
from pdfmerge.schemas.responses import (
    DownloadPayload,
    DownloadRequest,
    MergeStatus,
    SaveResponse,
)
from pdfmerge.services.merge_pipeline import MergePipeline
from pdfmerge.utils.exceptions import (
    NothingToMergeException,
    ProcessingException,
    TooManyRecordsException,
)

router = APIRouter()
settings = get_settings()
logger = structlog.get_logger()


def content_disposition(filename: str) -> str:
    name = quote(filename, safe="")
    return f"attachment; filename={name}; filename*=UTF-8''{name}"


def emit_download(payload: DownloadPayload, processing_time: float) -> Response:
    """Build the attachment response for a merged PDF or zip."""
    return Response(
        content=payload.content,
        media_type=payload.content_type,
        headers={
            "Content-Disposition": content_disposition(payload.filename),
            "X-Processing-Time-Ms": str(round(processing_time, 2)),
            "X-Files-Count": str(payload.files_count),
        }
    )


@router.post(
    "/records/{record_id}/merge",
    response_model=SaveResponse,
    summary="Merge record PDFs",
    description="Merge the PDFs of several fields and store the result in the output field"
)
async def merge_record_pdfs(
    record_id: str,
    config: MergeToolConfig,
    pipeline: MergePipeline = Depends(get_pipeline)
) -> SaveResponse:
    """
    Merge the PDF files referenced by a record's fields into one PDF.

    - **record_id**: Record holding the source fields
    - **config**: Source fields (in merge order), output form/field and
      optional filename template
    """
    start_time = time.time()

    result = await run_in_threadpool(pipeline.save, config, record_id)
    processing_time = (time.time() - start_time) * 1000

    if result.status == MergeStatus.FAILED:
        raise ProcessingException(result.reason or "merge failed")

    logger.info(
        "save_request_complete",
        record_id=record_id,
        status=result.status.value,
        filename=result.filename,
        processing_time_ms=processing_time
    )

    return SaveResponse(
        success=result.ok,
        status=result.status,
        message="Merged PDF saved" if result.ok else (result.reason or "Nothing to merge"),
        filename=result.filename,
        pages_count=result.pages_count if result.ok else None,
        files_merged=result.files_merged if result.ok else None,
        processing_time_ms=round(processing_time, 2)
    )


@router.post(
    "/merge-download",
    response_class=Response,
    summary="Download merged PDFs",
    description="Download one merged PDF, or a zip of merged PDFs for several records"
)
@limiter.limit(settings.rate_limit)
async def merge_download(
    request: Request,
    body: DownloadRequest,
    pipeline: MergePipeline = Depends(get_pipeline),
    app_settings: Settings = Depends(get_settings_dependency)
) -> Response:
    """
    Merge the PDFs of the configured field for every selected record.

    - **record_ids**: One id returns a PDF, several return a zip
    - **config**: Datalist action options
    """
    start_time = time.time()

    if len(body.record_ids) > app_settings.max_records_per_download:
        raise TooManyRecordsException(app_settings.max_records_per_download)

    payload = await run_in_threadpool(pipeline.download, body.config, body.record_ids)
    if payload is None:
        raise NothingToMergeException()

    processing_time = (time.time() - start_time) * 1000
    logger.info(
        "download_request_complete",
        records=len(body.record_ids),
        filename=payload.filename,
        output_size=len(payload.content),
        processing_time_ms=processing_time
    )
    return emit_download(payload, processing_time)
