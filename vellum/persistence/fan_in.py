"""
Fan-in query engine.

Fetches every field value of one or many document versions in a single
UNION ALL across the seven store tables. Each branch projects the same
column list: its own columns filled in, every other column a typed NULL,
plus a literal `store_kind` naming the branch. Rows come back ordered by
(document_version_id,) field_path, locale so a path's locale rows are
contiguous.
"""

import logging
from dataclasses import fields as dataclass_fields
from typing import Any, Dict, List, Mapping, Sequence, Tuple
from uuid import UUID

from sqlalchemy import (
    BigInteger, Boolean, Date, DateTime, Float, Integer, Numeric, String, Text, Time, Uuid,
    cast, literal_column, null, or_, select, union_all,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.selectable import CompoundSelect, Select
from sqlalchemy.types import TypeEngine

from vellum.api.models.field_store import STORE_MODELS
from vellum.api.models.types import JSONVariant
from vellum.domain.errors import UnknownFieldTypeError
from vellum.domain.fields import ALL_LOCALES, StoreKind
from vellum.domain.store_rows import STORE_ROW_CLASSES, StoreRow, StoreRowBase

logger = logging.getLogger(__name__)


# =============================================================================
# PROJECTION
# =============================================================================

COMMON_COLUMNS = (
    "id", "document_version_id", "collection_id", "field_type",
    "field_path", "field_name", "locale", "parent_path",
)

# Every column a fan-in row carries, in projection order
UNION_COLUMNS: Tuple[Tuple[str, TypeEngine], ...] = (
    ("id", Uuid()),
    ("document_version_id", Uuid()),
    ("collection_id", Uuid()),
    ("field_type", String(50)),
    ("field_path", String(500)),
    ("field_name", String(255)),
    ("locale", String(10)),
    ("parent_path", String(500)),
    # text
    ("text_value", Text()),
    ("word_count", Integer()),
    # numeric
    ("number_type", String(10)),
    ("value_integer", BigInteger()),
    ("value_decimal", Numeric()),
    ("value_float", Float()),
    # boolean
    ("boolean_value", Boolean()),
    # datetime
    ("date_type", String(10)),
    ("value_date", Date()),
    ("value_time", Time()),
    ("value_timestamp_tz", DateTime(timezone=True)),
    # file
    ("file_id", Uuid()),
    ("filename", String(255)),
    ("original_filename", String(255)),
    ("mime_type", String(100)),
    ("file_size", BigInteger()),
    ("storage_provider", String(50)),
    ("storage_path", Text()),
    ("storage_url", Text()),
    ("file_hash", String(64)),
    ("image_width", Integer()),
    ("image_height", Integer()),
    ("image_format", String(20)),
    ("processing_status", String(20)),
    ("thumbnail_generated", Boolean()),
    # relation
    ("target_document_id", Uuid()),
    ("target_collection_id", Uuid()),
    ("relationship_type", String(50)),
    ("cascade_delete", Boolean()),
    # json
    ("json_value", JSONVariant),
    ("json_schema", JSONVariant),
    ("object_keys", JSONVariant),
)

# Union column -> table column owned by each branch
KIND_COLUMNS: Dict[StoreKind, Dict[str, str]] = {
    StoreKind.TEXT: {"text_value": "value", "word_count": "word_count"},
    StoreKind.NUMERIC: {
        "number_type": "number_type",
        "value_integer": "value_integer",
        "value_decimal": "value_decimal",
        "value_float": "value_float",
    },
    StoreKind.BOOLEAN: {"boolean_value": "value"},
    StoreKind.DATETIME: {
        "date_type": "date_type",
        "value_date": "value_date",
        "value_time": "value_time",
        "value_timestamp_tz": "value_timestamp_tz",
    },
    StoreKind.FILE: {
        name: name for name in (
            "file_id", "filename", "original_filename", "mime_type", "file_size",
            "storage_provider", "storage_path", "storage_url", "file_hash",
            "image_width", "image_height", "image_format",
            "processing_status", "thumbnail_generated",
        )
    },
    StoreKind.RELATION: {
        name: name for name in (
            "target_document_id", "target_collection_id", "relationship_type", "cascade_delete",
        )
    },
    StoreKind.JSON: {"json_value": "value", "json_schema": "json_schema", "object_keys": "object_keys"},
}


def _branch(kind: StoreKind, version_ids: Sequence[UUID], locale: str) -> Select:
    model = STORE_MODELS[kind]
    owned = KIND_COLUMNS[kind]

    projection = [literal_column(f"'{kind.value}'", String).label("store_kind")]
    for name, type_ in UNION_COLUMNS:
        if name in COMMON_COLUMNS:
            projection.append(getattr(model, name).label(name))
        elif name in owned:
            projection.append(getattr(model, owned[name]).label(name))
        else:
            projection.append(cast(null(), type_).label(name))

    stmt = select(*projection)
    if len(version_ids) == 1:
        stmt = stmt.where(model.document_version_id == version_ids[0])
    else:
        stmt = stmt.where(model.document_version_id.in_(version_ids))
    if locale != ALL_LOCALES:
        stmt = stmt.where(or_(model.locale == locale, model.locale == ALL_LOCALES))
    return stmt


def build_field_values_query(version_ids: Sequence[UUID], locale: str = ALL_LOCALES) -> CompoundSelect:
    """
    Build the UNION ALL statement for the given version ids.

    Args:
        version_ids: One or more document version ids
        locale: Locale to keep (plus catch-all rows), or "all" for every row

    Returns:
        A compound select ordered for reconstruction
    """
    if not version_ids:
        raise ValueError("At least one document version id is required")

    stmt = union_all(*(_branch(kind, version_ids, locale) for kind in StoreKind))
    if len(version_ids) == 1:
        return stmt.order_by(literal_column("field_path"), literal_column("locale"))
    return stmt.order_by(
        literal_column("document_version_id"),
        literal_column("field_path"),
        literal_column("locale"),
    )


async def fetch_field_values(
    session: AsyncSession, version_ids: Sequence[UUID], locale: str = ALL_LOCALES
) -> List[Dict[str, Any]]:
    """Run the fan-in query and return raw union rows as dicts."""
    if not version_ids:
        return []
    result = await session.execute(build_field_values_query(list(version_ids), locale))
    rows = [dict(row) for row in result.mappings().all()]
    logger.debug(f"Fan-in fetched {len(rows)} field values for {len(version_ids)} version(s)")
    return rows


# =============================================================================
# NORMALIZATION
# =============================================================================

_BASE_FIELDS = frozenset(f.name for f in dataclass_fields(StoreRowBase))


def _row_field_names(kind: StoreKind) -> List[str]:
    return [f.name for f in dataclass_fields(STORE_ROW_CLASSES[kind]) if f.name not in _BASE_FIELDS]


def normalize_field_value(row: Mapping[str, Any]) -> StoreRow:
    """
    Convert one union row into the store row of its kind.

    Raises:
        UnknownFieldTypeError: the discriminant names no store kind
    """
    discriminant = row.get("store_kind")
    try:
        kind = StoreKind(discriminant)
    except ValueError:
        raise UnknownFieldTypeError(str(discriminant)) from None

    row_class = STORE_ROW_CLASSES[kind]
    values = {name: row.get(name) for name in _row_field_names(kind)}
    return row_class(
        field_path=row["field_path"],
        field_name=row["field_name"],
        locale=row["locale"],
        parent_path=row.get("parent_path"),
        field_type=row.get("field_type") or "",
        document_version_id=row.get("document_version_id"),
        **values,
    )


def normalize_field_values(rows: Sequence[Mapping[str, Any]]) -> List[StoreRow]:
    return [normalize_field_value(row) for row in rows]


def group_by_version(rows: Sequence[StoreRow]) -> Dict[UUID, List[StoreRow]]:
    grouped: Dict[UUID, List[StoreRow]] = {}
    for row in rows:
        grouped.setdefault(row.document_version_id, []).append(row)
    return grouped
