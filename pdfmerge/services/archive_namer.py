# pdfmerge/services/archive_namer.py
import zipfile
from io import BytesIO
from typing import Dict, Iterable, Optional, Tuple
import structlog

logger = structlog.get_logger()


def split_extension(filename: str) -> Tuple[str, str]:
    """Split at the last dot; the extension keeps the dot."""
    dot = filename.rfind(".")
    if dot == -1:
        return filename, ""
    return filename[:dot], filename[dot:]


def name_for(filename: str, seen_counts: Dict[str, int]) -> str:
    """Return a name for *filename* not yet used in *seen_counts*.

    The first occurrence is returned unchanged; later ones become
    ``"name (1).pdf"``, ``"name (2).pdf"`` and so on.
    """
    if filename not in seen_counts:
        seen_counts[filename] = 0
        return filename

    base, ext = split_extension(filename)
    count = seen_counts[filename]
    while True:
        count += 1
        candidate = f"{base} ({count}){ext}"
        if candidate not in seen_counts:
            break
    seen_counts[filename] = count
    seen_counts[candidate] = 0
    return candidate


class ArchiveNamer:
    """Unique entry names for one archive."""

    def __init__(self):
        self.seen_counts: Dict[str, int] = {}

    def name_for(self, filename: str) -> str:
        return name_for(filename, self.seen_counts)


def build_zip(
    entries: Iterable[Tuple[str, bytes]],
    namer: Optional[ArchiveNamer] = None
) -> bytes:
    """Write ``(filename, content)`` pairs, in order, into an in-memory zip."""
    namer = namer or ArchiveNamer()
    buffer = BytesIO()
    count = 0

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for filename, content in entries:
            entry_name = namer.name_for(filename)
            zf.writestr(entry_name, content)
            count += 1
            logger.debug("zip_entry_added", entry=entry_name, size=len(content))

    logger.info("zip_complete", entries=count, output_size=buffer.tell())
    return buffer.getvalue()
