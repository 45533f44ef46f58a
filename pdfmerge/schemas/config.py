# pdfmerge/schemas/config.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional


class MergeToolConfig(BaseModel):
    """Options of the save-mode merge tool."""

    form_def_id: str = Field(default="", description="Source form holding the PDF fields")
    fields: List[str] = Field(
        default_factory=list,
        description="Field ids to merge, in merge order"
    )
    output_form_def_id: str = Field(default="", description="Form receiving the merged file")
    output_file_field_id: str = Field(default="", description="Field storing the merged filename")
    rename_file: Optional[str] = Field(
        default=None,
        description="Output filename, may contain {field} placeholders"
    )
    add_bookmarks: bool = Field(
        default=False,
        description="Add an outline item for each merged source file"
    )

    @field_validator("fields", mode="before")
    @classmethod
    def _flatten_field_grid(cls, value: Any) -> Any:
        # The designer stores the field list as a grid of {"field": id} rows.
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            flattened = []
            for row in value:
                if isinstance(row, dict):
                    row = row.get("field")
                if row is not None and str(row).strip():
                    flattened.append(str(row).strip())
            return flattened
        return value

    @property
    def missing_options(self) -> List[str]:
        missing = []
        if not self.form_def_id.strip():
            missing.append("form_def_id")
        if not self.output_form_def_id.strip():
            missing.append("output_form_def_id")
        if not self.output_file_field_id.strip():
            missing.append("output_file_field_id")
        return missing


class DatalistActionConfig(BaseModel):
    """Options of the download-mode datalist action."""

    label: str = Field(default="Download PDF")
    form_def_id: str = Field(default="")
    field_id: str = Field(default="", description="Field holding the PDF paths")
    file_name: Optional[str] = Field(
        default=None,
        description="Field whose value names each downloaded PDF"
    )
    rename_file: Optional[str] = Field(
        default=None,
        description="Filename template, takes precedence over file_name"
    )
    zip_file_name: Optional[str] = Field(default=None)
    add_bookmarks: bool = Field(default=False)
    record_id_column: str = Field(default="id")
    confirmation: str = Field(default="")

    # Form rendering options, carried for compatibility with existing
    # action definitions.
    hide_empty_value_field: bool = Field(default=False)
    show_not_selected_options: bool = Field(default=False)
    repeat_header: bool = Field(default=False)
    repeat_footer: bool = Field(default=False)
    formatting: str = Field(default="")
    header_html: str = Field(default="")
    footer_html: str = Field(default="")

    @property
    def filename_template(self) -> Optional[str]:
        if self.rename_file and self.rename_file.strip():
            return self.rename_file
        if self.file_name and self.file_name.strip():
            return "{" + self.file_name.strip() + "}"
        return None

    @property
    def archive_name(self) -> str:
        name = (self.zip_file_name or "").strip() or self.label.strip() or "merged"
        if not name.lower().endswith(".zip"):
            name += ".zip"
        return name
