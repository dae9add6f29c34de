"""
Store rows: one scalar value flattened out of a document.

Each row class belongs to exactly one StoreKind and therefore to exactly
one typed table. `value` rebuilds the document value from the row's
columns; the flattener, the fan-in normalizer and the reconstructor all
dispatch on `kind`.
"""

from dataclasses import dataclass, fields
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Type, Union
from uuid import UUID

from vellum.domain.fields import ALL_LOCALES, StoreKind


@dataclass
class StoreRowBase:
    field_path: str
    field_name: str
    locale: str = ALL_LOCALES
    parent_path: Optional[str] = None
    field_type: str = ""
    document_version_id: Optional[UUID] = None

    kind: ClassVar[StoreKind]

    @property
    def value(self) -> Any:
        raise NotImplementedError

    def columns(self) -> Dict[str, Any]:
        """Kind-specific column values, keyed by table column name."""
        base = {f.name for f in fields(StoreRowBase)}
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in base}


@dataclass
class TextStoreRow(StoreRowBase):
    text_value: Optional[str] = None

    kind: ClassVar[StoreKind] = StoreKind.TEXT

    @property
    def value(self) -> Any:
        return self.text_value

    def columns(self) -> Dict[str, Any]:
        return {"value": self.text_value, "word_count": len(self.text_value.split()) if self.text_value else 0}


@dataclass
class NumericStoreRow(StoreRowBase):
    number_type: str = "integer"
    value_integer: Optional[int] = None
    value_decimal: Optional[Decimal] = None
    value_float: Optional[float] = None

    kind: ClassVar[StoreKind] = StoreKind.NUMERIC

    @property
    def value(self) -> Any:
        if self.number_type == "integer":
            return self.value_integer
        if self.number_type == "decimal":
            return self.value_decimal
        if self.number_type == "float":
            return self.value_float
        return None


@dataclass
class BooleanStoreRow(StoreRowBase):
    boolean_value: Optional[bool] = None

    kind: ClassVar[StoreKind] = StoreKind.BOOLEAN

    @property
    def value(self) -> Any:
        return self.boolean_value

    def columns(self) -> Dict[str, Any]:
        return {"value": self.boolean_value}


@dataclass
class DateTimeStoreRow(StoreRowBase):
    date_type: str = "datetime"
    value_date: Optional[date] = None
    value_time: Optional[time] = None
    value_timestamp_tz: Optional[datetime] = None

    kind: ClassVar[StoreKind] = StoreKind.DATETIME

    @property
    def value(self) -> Any:
        if self.date_type == "date":
            return self.value_date
        if self.date_type == "time":
            return self.value_time
        if self.date_type == "datetime":
            return self.value_timestamp_tz
        return None


FILE_VALUE_KEYS = (
    "file_id", "filename", "original_filename", "mime_type", "file_size",
    "storage_provider", "storage_path", "storage_url", "file_hash",
    "image_width", "image_height", "image_format",
    "processing_status", "thumbnail_generated",
)


@dataclass
class FileStoreRow(StoreRowBase):
    file_id: Optional[UUID] = None
    filename: Optional[str] = None
    original_filename: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    storage_provider: Optional[str] = None
    storage_path: Optional[str] = None
    storage_url: Optional[str] = None
    file_hash: Optional[str] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    image_format: Optional[str] = None
    processing_status: str = "pending"
    thumbnail_generated: bool = False

    kind: ClassVar[StoreKind] = StoreKind.FILE

    @property
    def value(self) -> Any:
        return {key: getattr(self, key) for key in FILE_VALUE_KEYS if getattr(self, key) is not None}


RELATION_VALUE_KEYS = ("target_document_id", "target_collection_id", "relationship_type", "cascade_delete")


@dataclass
class RelationStoreRow(StoreRowBase):
    target_document_id: Optional[UUID] = None
    target_collection_id: Optional[UUID] = None
    relationship_type: str = "reference"
    cascade_delete: bool = False

    kind: ClassVar[StoreKind] = StoreKind.RELATION

    @property
    def value(self) -> Any:
        return {key: getattr(self, key) for key in RELATION_VALUE_KEYS if getattr(self, key) is not None}


@dataclass
class JsonStoreRow(StoreRowBase):
    json_value: Any = None
    json_schema: Optional[Dict[str, Any]] = None
    object_keys: Optional[List[str]] = None

    kind: ClassVar[StoreKind] = StoreKind.JSON

    @property
    def value(self) -> Any:
        return self.json_value

    def columns(self) -> Dict[str, Any]:
        return {"value": self.json_value, "json_schema": self.json_schema, "object_keys": self.object_keys}


StoreRow = Union[
    TextStoreRow, NumericStoreRow, BooleanStoreRow, DateTimeStoreRow,
    FileStoreRow, RelationStoreRow, JsonStoreRow,
]

STORE_ROW_CLASSES: Dict[StoreKind, Type[StoreRowBase]] = {
    StoreKind.TEXT: TextStoreRow,
    StoreKind.NUMERIC: NumericStoreRow,
    StoreKind.BOOLEAN: BooleanStoreRow,
    StoreKind.DATETIME: DateTimeStoreRow,
    StoreKind.FILE: FileStoreRow,
    StoreKind.RELATION: RelationStoreRow,
    StoreKind.JSON: JsonStoreRow,
}
