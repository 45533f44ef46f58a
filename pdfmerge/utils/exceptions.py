# pdfmerge/utils/exceptions.py
from fastapi import HTTPException, status
from typing import Any, Optional, Dict


class PdfMergeError(Exception):
    """Raised when concatenating the selected PDF files fails."""


class FileResolutionError(Exception):
    """Raised when a stored path cannot be mapped to a file."""


class PersistenceError(Exception):
    """Raised when the record store or upload directory rejects a write."""


class RecordNotFoundError(LookupError):
    """Raised when a record does not exist in the record store."""

    def __init__(self, form_id: str, record_id: str):
        super().__init__(f"Record '{record_id}' not found in form '{form_id}'")
        self.form_id = form_id
        self.record_id = record_id


class PDFServiceException(HTTPException):
    """Base exception for PDF service."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NothingToMergeException(PDFServiceException):
    def __init__(self, detail: str = "No valid PDF files to merge"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class TooManyRecordsException(PDFServiceException):
    def __init__(self, max_count: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many records. Maximum allowed: {max_count}"
        )


class ProcessingException(PDFServiceException):
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Processing error: {detail}"
        )
