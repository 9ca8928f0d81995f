"""h2osheet Pydantic models for the technical sheet document.

The persisted document shape uses camelCase keys (``allowCustomFields``,
``lastUpdatedAt``...). Models accept both the camelCase aliases and the Python
field names; dump with ``by_alias=True`` to produce the stored shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

FieldValue = Union[str, int, float, bool, list[str]]


class FieldType(str, Enum):
    """Closed set of technical sheet field types."""

    TEXT = "text"
    NUMBER = "number"
    UNIT = "unit"  # number with a selectable unit
    SELECT = "select"
    TAGS = "tags"  # multi-select
    BOOLEAN = "boolean"


class DataSource(str, Enum):
    """Provenance of a field value."""

    MANUAL = "manual"
    AGENT = "agent"
    CALCULATED = "calculated"
    IMPORTED = "imported"

    @classmethod
    def _missing_(cls, value: object) -> DataSource | None:
        # Documents written by earlier dashboard versions
        legacy = {"ai": cls.AGENT, "import": cls.IMPORTED}
        if isinstance(value, str):
            return legacy.get(value.strip().lower())
        return None


class FieldImportance(str, Enum):
    """How much a parameter matters for proposal generation."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    OPTIONAL = "optional"

    @classmethod
    def _missing_(cls, value: object) -> FieldImportance | None:
        if isinstance(value, str) and value.strip().lower() == "recommended":
            return cls.IMPORTANT
        return None


class VersionSource(str, Enum):
    """What triggered a version snapshot."""

    MANUAL = "manual"
    IMPORT = "import"
    AI = "ai"
    ROLLBACK = "rollback"

    def to_data_source(self) -> DataSource:
        """Map a snapshot trigger onto the provenance of the values it wrote."""
        if self is VersionSource.IMPORT:
            return DataSource.IMPORTED
        if self is VersionSource.AI:
            return DataSource.AGENT
        return DataSource.MANUAL


class FieldCondition(BaseModel):
    """Visibility gate referencing another field of the same document."""

    field: str
    value: Union[str, list[str]]


class TableField(BaseModel):
    """A single typed data point of a technical sheet section.

    Library-backed fields have an ``id`` equal to a parameter id; their
    metadata (label, type, rule, options, units...) is rebuilt from the
    parameter library on load. Custom fields keep their own metadata.
    """

    id: str
    label: str
    type: FieldType = FieldType.TEXT
    value: FieldValue | None = ""
    unit: str | None = None
    units: list[str] | None = None
    source: DataSource = DataSource.MANUAL
    options: list[str] | None = None
    required: bool | None = None
    importance: FieldImportance | None = None
    validation_rule: Callable[[Any], bool] | None = Field(default=None, exclude=True)
    validation_message: str | None = Field(default=None, alias="validationMessage")
    description: str | None = None
    multiline: bool | None = None
    placeholder: str | None = None
    suggested_value: FieldValue | None = Field(default=None, alias="suggestedValue")
    notes: str | None = None
    last_updated_at: str | None = Field(default=None, alias="lastUpdatedAt")
    last_updated_by: str | None = Field(default=None, alias="lastUpdatedBy")
    conditional: FieldCondition | None = None

    class Config:
        populate_by_name = True
        extra = "allow"
        json_schema_extra = {
            "example": {
                "id": "ph",
                "label": "pH",
                "type": "number",
                "value": 7.2,
                "source": "manual",
                "importance": "critical",
                "validationMessage": "pH must be between 0 and 14",
            }
        }

    @model_validator(mode="before")
    @classmethod
    def keep_unknown_type(cls, data: Any) -> Any:
        """Read a field type this version doesn't know as text, keeping the original.

        The stored type is kept under ``legacyType`` so a later save writes it back.
        """
        if isinstance(data, dict):
            raw = data.get("type")
            if isinstance(raw, str) and raw not in FieldType._value2member_map_:
                data = {**data, "type": FieldType.TEXT.value, "legacyType": raw}
        return data

    @property
    def is_completed(self) -> bool:
        """A value counts unless it is missing or the empty string (0 and [] count)."""
        return self.value is not None and self.value != ""


class TableSection(BaseModel):
    """Ordered group of related fields (e.g. "Water Quality")."""

    id: str
    title: str
    description: str | None = None
    fields: list[TableField] = Field(default_factory=list)
    notes: str | None = None
    allow_custom_fields: bool | None = Field(default=None, alias="allowCustomFields")

    class Config:
        populate_by_name = True
        extra = "allow"

    def get_field(self, field_id: str) -> TableField | None:
        for table_field in self.fields:
            if table_field.id == field_id:
                return table_field
        return None


class VersionChange(BaseModel):
    """One field-level difference between two document states."""

    section_id: str = Field(alias="sectionId")
    field_id: str = Field(alias="fieldId")
    label: str
    previous_value: FieldValue | None = Field(default=None, alias="previousValue")
    new_value: FieldValue | None = Field(default=None, alias="newValue")
    unit: str | None = None
    change_type: Literal["added", "modified", "removed"] = Field(alias="changeType")
    changed_by: str | None = Field(default=None, alias="changedBy")
    changed_at: datetime | None = Field(default=None, alias="changedAt")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def key(self) -> str:
        return f"{self.section_id}:{self.field_id}"


class TechnicalDataVersion(BaseModel):
    """Immutable checkpoint of a project's technical sheet."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str = Field(alias="projectId")
    version_label: str = Field(alias="versionLabel")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    created_by: str | None = Field(default=None, alias="createdBy")
    source: VersionSource = VersionSource.MANUAL
    snapshot: list[TableSection] = Field(default_factory=list)
    changes: list[VersionChange] = Field(default_factory=list)
    notes: str | None = None

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("version_label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("version_label must not be blank")
        return v


@dataclass(slots=True)
class FieldUpdate:
    """A single value edit addressed by section and field id."""

    section_id: str
    field_id: str
    value: FieldValue | None
    unit: str | None = None
    source: DataSource | None = None
    notes: str | None = None


@dataclass(frozen=True)
class CompletionStats:
    total: int
    completed: int
    percentage: int


@dataclass(slots=True)
class SummaryRow:
    """Flat row used by exports and the summary table."""

    section_id: str
    section_title: str
    field_id: str
    field_label: str
    field_type: str
    current_value: FieldValue | None = None
    unit: str | None = None
    description: str | None = None
    source: str | None = None


@dataclass(slots=True)
class TargetField:
    """Field descriptor handed to the proposal agent."""

    id: str
    label: str
    section: str
    type: str
    current_value: FieldValue | None = None
    unit: str | None = None
    description: str | None = None
