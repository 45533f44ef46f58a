# tests/conftest.py
import pytest
import structlog
from fastapi.testclient import TestClient
from pathlib import Path
from typing import Callable, Optional
from pypdf import PdfWriter

from pdfmerge.main import app
from pdfmerge.api.dependencies import get_settings_dependency
from pdfmerge.config import Settings
from pdfmerge.services.merge_pipeline import MergePipeline
from pdfmerge.services.record_store import JsonRecordStore
from pdfmerge.utils.file_handler import StorageFileHandler

# Loggers must stay reconfigurable for structlog.testing.capture_logs.
structlog.configure(cache_logger_on_first_use=False)

PdfFactory = Callable[..., Path]


def write_pdf(path: Path, pages: int = 1, width: int = 72) -> Path:
    """Write a PDF whose page n is ``width + n`` points wide."""
    writer = PdfWriter()
    for n in range(pages):
        writer.add_blank_page(width=width + n, height=72)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        writer.write(handle)
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    data_dir = tmp_path / "records"
    upload_root = tmp_path / "uploads"
    data_dir.mkdir()
    upload_root.mkdir()
    return Settings(data_dir=str(data_dir), upload_root=str(upload_root))


@pytest.fixture
def record_store(settings: Settings) -> JsonRecordStore:
    return JsonRecordStore(settings.data_path)


@pytest.fixture
def storage(settings: Settings, record_store: JsonRecordStore) -> StorageFileHandler:
    return StorageFileHandler(settings.upload_path, record_store)


@pytest.fixture
def pipeline(record_store: JsonRecordStore, storage: StorageFileHandler) -> MergePipeline:
    return MergePipeline(record_store=record_store, storage=storage)


@pytest.fixture
def upload_pdf(settings: Settings) -> Callable[..., Path]:
    """Create a PDF inside a record's upload directory."""
    def _create(
        form_id: str,
        record_id: str,
        filename: str,
        pages: int = 1,
        width: int = 72
    ) -> Path:
        path = settings.upload_path / form_id / record_id / filename
        return write_pdf(path, pages=pages, width=width)

    return _create


@pytest.fixture
def pdf_factory(tmp_path: Path) -> PdfFactory:
    def _create(filename: str, pages: int = 1, width: int = 72, directory: Optional[Path] = None) -> Path:
        return write_pdf((directory or tmp_path) / filename, pages=pages, width=width)

    return _create


@pytest.fixture
def client(settings: Settings):
    """Test client fixture."""
    app.dependency_overrides[get_settings_dependency] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()
