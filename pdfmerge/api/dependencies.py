# pdfmerge/api/dependencies.py
from fastapi import Depends
from slowapi import Limiter
from slowapi.util import get_remote_address

from pdfmerge.config import get_settings, Settings
from pdfmerge.services.merge_pipeline import MergePipeline
from pdfmerge.services.record_store import JsonRecordStore
from pdfmerge.utils.file_handler import StorageFileHandler


def get_limiter() -> Limiter:
    """Get rate limiter instance."""
    return Limiter(key_func=get_remote_address)


limiter = get_limiter()


async def get_settings_dependency() -> Settings:
    """Dependency to get settings."""
    return get_settings()


def get_pipeline(settings: Settings = Depends(get_settings_dependency)) -> MergePipeline:
    """Pipeline wired to the configured record store and upload root."""
    record_store = JsonRecordStore(settings.data_path)
    storage = StorageFileHandler(settings.upload_path, record_store)
    return MergePipeline(record_store=record_store, storage=storage)
