# pdfmerge/schemas/records.py
from pydantic import BaseModel, Field
from typing import Any, List, Mapping, Optional


class FieldValue(BaseModel):
    field_id: str
    value: Optional[str] = None


class FieldRow(BaseModel):
    """One record's field values, in form order."""

    record_id: str
    fields: List[FieldValue] = Field(default_factory=list)

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, Any],
        record_id: Optional[str] = None
    ) -> "FieldRow":
        """Build a row from a plain field-name to value mapping.

        The record identifier defaults to the mapping's ``id`` entry.
        """
        if record_id is None:
            record_id = values.get("id")
        if record_id is None:
            raise ValueError("record identifier is required")
        fields = [
            FieldValue(
                field_id=str(key),
                value=None if value is None else str(value)
            )
            for key, value in values.items()
        ]
        return cls(record_id=str(record_id), fields=fields)

    def get(self, field_id: str) -> Optional[str]:
        for item in self.fields:
            if item.field_id == field_id:
                return item.value
        return None


class RecordContext(BaseModel):
    """Identifies where a record's uploaded files live."""

    record_id: str
    form_id: str
    table_name: str
