"""
Collection field definitions.

A collection is a named schema: an ordered list of field definitions. Scalar
field types map onto exactly one of the seven store kinds; structural types
(array, group, block) hold nested definitions and are never stored directly.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vellum.domain.errors import UnsupportedFieldTypeError


class FieldType(str, Enum):
    """Field types a collection definition may declare."""
    TEXT = "text"
    TEXT_AREA = "textArea"
    SELECT = "select"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    CHECKBOX = "checkbox"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    FILE = "file"
    IMAGE = "image"
    RELATION = "relation"
    RICH_TEXT = "richText"
    JSON = "json"
    OBJECT = "object"
    ARRAY = "array"
    GROUP = "group"
    BLOCK = "block"


class StoreKind(str, Enum):
    """The seven typed store tables."""
    TEXT = "text"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    FILE = "file"
    RELATION = "relation"
    JSON = "json"


STORE_KIND_BY_FIELD_TYPE: Dict[FieldType, StoreKind] = {
    FieldType.TEXT: StoreKind.TEXT,
    FieldType.TEXT_AREA: StoreKind.TEXT,
    FieldType.SELECT: StoreKind.TEXT,
    FieldType.INTEGER: StoreKind.NUMERIC,
    FieldType.DECIMAL: StoreKind.NUMERIC,
    FieldType.FLOAT: StoreKind.NUMERIC,
    FieldType.BOOLEAN: StoreKind.BOOLEAN,
    FieldType.CHECKBOX: StoreKind.BOOLEAN,
    FieldType.DATE: StoreKind.DATETIME,
    FieldType.TIME: StoreKind.DATETIME,
    FieldType.DATETIME: StoreKind.DATETIME,
    FieldType.FILE: StoreKind.FILE,
    FieldType.IMAGE: StoreKind.FILE,
    FieldType.RELATION: StoreKind.RELATION,
    FieldType.RICH_TEXT: StoreKind.JSON,
    FieldType.JSON: StoreKind.JSON,
    FieldType.OBJECT: StoreKind.JSON,
}

STRUCTURAL_FIELD_TYPES = frozenset({FieldType.ARRAY, FieldType.GROUP, FieldType.BLOCK})

# Catch-all locale for unlocalized values
ALL_LOCALES = "all"


class FieldDefinition(BaseModel):
    """
    One field in a collection schema.

    `type` stays a plain string so definitions written by other releases
    still load; `field_type` resolves it and raises for unknown types.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str
    label: Optional[str] = None
    required: bool = False
    unique: bool = False
    localized: bool = False
    fields: List["FieldDefinition"] = Field(default_factory=list)

    @property
    def field_type(self) -> FieldType:
        try:
            return FieldType(self.type)
        except ValueError:
            raise UnsupportedFieldTypeError(self.type) from None

    @property
    def store_kind(self) -> Optional[StoreKind]:
        """Store kind for scalar types, None for structural ones."""
        return STORE_KIND_BY_FIELD_TYPE.get(self.field_type)

    @property
    def is_block_array(self) -> bool:
        """True for an array whose items are block definitions."""
        return (
            self.type == FieldType.ARRAY.value
            and bool(self.fields)
            and all(sub.type == FieldType.BLOCK.value for sub in self.fields)
        )

    def get_field(self, name: str) -> Optional["FieldDefinition"]:
        for sub in self.fields:
            if sub.name == name:
                return sub
        return None


class CollectionLabels(BaseModel):
    singular: str
    plural: str


class CollectionDefinition(BaseModel):
    """Named schema for a collection of documents."""

    path: str
    labels: CollectionLabels
    fields: List[FieldDefinition] = Field(default_factory=list)

    def get_field(self, name: str) -> Optional[FieldDefinition]:
        for field in self.fields:
            if field.name == name:
                return field
        return None


FieldDefinition.model_rebuild()
