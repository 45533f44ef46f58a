# tests/test_merge_pipeline.py
import json
import zipfile
from io import BytesIO

import pytest
from pypdf import PdfReader
from structlog.testing import capture_logs

from pdfmerge.schemas.config import DatalistActionConfig, MergeToolConfig
from pdfmerge.schemas.responses import MergeStatus
from pdfmerge.utils.exceptions import PersistenceError


def pages(content: bytes) -> int:
    return len(PdfReader(BytesIO(content)).pages)


@pytest.fixture
def tool_config() -> MergeToolConfig:
    return MergeToolConfig(
        form_def_id="applications",
        fields=[{"field": "cv"}, {"field": "letters"}],
        output_form_def_id="applications",
        output_file_field_id="bundle",
        rename_file="{applicant}-{id}",
    )


@pytest.fixture
def application(record_store, upload_pdf):
    upload_pdf("applications", "A1", "cv.pdf", pages=2)
    upload_pdf("applications", "A1", "letter1.pdf", pages=1)
    upload_pdf("applications", "A1", "letter2.pdf", pages=3)
    record_store.save_row(
        "applications",
        "A1",
        {"applicant": "Jane Doe", "cv": "cv.pdf", "letters": "letter1.pdf;letter2.pdf"},
    )
    return "A1"


def test_config_accepts_field_grid_and_plain_list():
    grid = MergeToolConfig(fields=[{"field": "a"}, {"field": ""}, {"other": "x"}, "b"])

    assert grid.fields == ["a", "b"]
    assert MergeToolConfig().missing_options == [
        "form_def_id", "output_form_def_id", "output_file_field_id"
    ]


def test_save_merges_in_field_order_and_stores_file(
    pipeline, tool_config, application, settings, record_store
):
    result = pipeline.save(tool_config, application)

    assert result.status == MergeStatus.SUCCESS
    assert result.filename == "Jane Doe-A1.pdf"
    assert result.pages_count == 6

    stored = settings.upload_path / "applications" / "A1" / "Jane Doe-A1.pdf"
    assert pages(stored.read_bytes()) == 6
    assert record_store.load_row("A1", "applications").get("bundle") == "Jane Doe-A1.pdf"


def test_save_skips_invalid_file_with_warning(
    pipeline, tool_config, application, settings, record_store
):
    fake = settings.upload_path / "applications" / "A1" / "fake.pdf"
    fake.write_text("plain text")
    record_store.store_field("applications", "A1", "letters", "letter1.pdf;fake.pdf;letter2.pdf")

    with capture_logs() as logs:
        result = pipeline.save(tool_config, application)

    assert result.ok
    assert result.pages_count == 6
    assert result.files_merged == 3
    assert any(entry["event"] == "file_not_pdf" for entry in logs)


def test_save_without_configuration_is_noop(pipeline, application):
    with capture_logs() as logs:
        result = pipeline.save(MergeToolConfig(fields=["cv"]), application)

    assert result.status == MergeStatus.EMPTY
    assert logs[0]["event"] == "merge_config_missing"


def test_save_with_no_paths_does_not_store(pipeline, tool_config, record_store, settings):
    record_store.save_row("applications", "A2", {"cv": "", "letters": " ; "})

    result = pipeline.save(tool_config, "A2")

    assert result.status == MergeStatus.EMPTY
    assert "bundle" not in json.loads(
        (settings.data_path / "applications" / "A2.json").read_text()
    )


def test_save_with_only_missing_files(pipeline, tool_config, record_store):
    record_store.save_row("applications", "A3", {"cv": "nothing-here.pdf"})

    result = pipeline.save(tool_config, "A3")

    assert result.status == MergeStatus.EMPTY
    assert result.reason == "no valid PDF files to merge"


def test_save_unknown_record(pipeline, tool_config):
    assert pipeline.save(tool_config, "missing").status == MergeStatus.EMPTY


def test_save_reports_persistence_failure(pipeline, tool_config, application, monkeypatch):
    def reject(*args, **kwargs):
        raise PersistenceError("disk full")

    monkeypatch.setattr(pipeline.storage, "persist", reject)

    with capture_logs() as logs:
        result = pipeline.save(tool_config, application)

    assert result.status == MergeStatus.FAILED
    assert any(entry["event"] == "merged_pdf_save_failed" for entry in logs)


def test_save_default_filename_uses_timestamp(pipeline, tool_config, application):
    config = tool_config.model_copy(update={"rename_file": None})

    result = pipeline.save(config, application)

    assert result.filename.startswith("merged_")
    assert result.filename.endswith(".pdf")


@pytest.fixture
def action_config() -> DatalistActionConfig:
    return DatalistActionConfig(
        label="Export",
        form_def_id="claims",
        field_id="documents",
        file_name="title",
    )


@pytest.fixture
def claims(record_store, upload_pdf):
    for record_id, title, count in [("C1", "Claim", 2), ("C2", "Claim", 1), ("C3", "Other", 3)]:
        names = []
        for n in range(count):
            upload_pdf("claims", record_id, f"doc{n}.pdf")
            names.append(f"doc{n}.pdf")
        record_store.save_row("claims", record_id, {"title": title, "documents": ";".join(names)})
    return ["C1", "C2", "C3"]


def test_download_single_record_returns_pdf(pipeline, action_config, claims):
    payload = pipeline.download(action_config, ["C1"])

    assert payload.content_type == "application/pdf"
    assert payload.filename == "Claim.pdf"
    assert pages(payload.content) == 2


def test_download_without_name_field_uses_record_id(pipeline, action_config, claims):
    config = action_config.model_copy(update={"file_name": None})

    assert pipeline.download(config, ["C3"]).filename == "C3.pdf"


def test_download_several_records_returns_zip(pipeline, action_config, claims):
    payload = pipeline.download(action_config, claims)

    assert payload.content_type == "application/zip"
    assert payload.filename == "Export.zip"
    assert payload.files_count == 3
    with zipfile.ZipFile(BytesIO(payload.content)) as zf:
        assert zf.namelist() == ["Claim.pdf", "Claim (1).pdf", "Other.pdf"]
        assert pages(zf.read("Claim (1).pdf")) == 1
        assert pages(zf.read("Other.pdf")) == 3


def test_download_zip_name_from_config(pipeline, action_config, claims):
    config = action_config.model_copy(update={"zip_file_name": "claims-export"})

    assert pipeline.download(config, claims[:2]).filename == "claims-export.zip"


def test_download_skips_records_without_pdfs(pipeline, action_config, claims, record_store):
    record_store.save_row("claims", "C4", {"title": "Empty", "documents": ""})

    payload = pipeline.download(action_config, ["C4", "C1", "unknown"])

    with zipfile.ZipFile(BytesIO(payload.content)) as zf:
        assert zf.namelist() == ["Claim.pdf"]


def test_download_nothing_to_merge(pipeline, action_config, record_store):
    record_store.save_row("claims", "C5", {"documents": ""})

    assert pipeline.download(action_config, ["C5"]) is None
    assert pipeline.download(action_config, []) is None


@pytest.mark.parametrize("output_form", ["out form", "a/b", ".."])
def test_save_with_invalid_output_form_leaves_no_file(
    pipeline, tool_config, application, settings, output_form
):
    config = tool_config.model_copy(
        update={"output_form_def_id": output_form, "rename_file": "bundle"}
    )
    before = sorted(p for p in settings.upload_path.rglob("*") if p.is_file())

    with capture_logs() as logs:
        result = pipeline.save(config, application)

    assert result.status == MergeStatus.FAILED
    assert sorted(p for p in settings.upload_path.rglob("*") if p.is_file()) == before
    assert any(entry["event"] == "merged_pdf_save_failed" for entry in logs)


def test_save_skips_text_file_mentioning_pdf_signature(
    pipeline, tool_config, application, settings, record_store
):
    notes = settings.upload_path / "applications" / "A1" / "notes.txt"
    notes.write_text("Reminder: every PDF file starts with %PDF-1.7 and a binary comment.\n")
    record_store.store_field("applications", "A1", "letters", "letter1.pdf;notes.txt;letter2.pdf")

    with capture_logs() as logs:
        result = pipeline.save(tool_config, application)

    assert result.status == MergeStatus.SUCCESS
    assert result.pages_count == 6
    assert result.files_merged == 3
    assert any(entry["event"] == "file_not_pdf" for entry in logs)


def test_save_adds_bookmarks_when_configured(pipeline, tool_config, application, settings):
    config = tool_config.model_copy(update={"add_bookmarks": True})

    result = pipeline.save(config, application)

    outline = PdfReader(BytesIO(result.content)).outline
    assert [item.title for item in outline] == ["cv", "letter1", "letter2"]
