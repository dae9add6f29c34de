"""
Field flattener.

Walks a document in lockstep with its collection's field definitions and
emits one store row per scalar leaf value (one per locale for localized
fields). Absent and null values produce no row.

Field paths:
    title                               top-level scalar
    seo.description                     group member
    links.1.url                         array item member
    content.0.photoBlock.caption        block field, keyed by block name
    content.1.photoBlock.0.alt          block field given as a list of entries
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import UUID

from vellum.core.config import CONTENT_LOCALES
from vellum.domain.errors import InvalidFieldValueError, UnsupportedFieldTypeError
from vellum.domain.fields import (
    ALL_LOCALES,
    CollectionDefinition,
    FieldDefinition,
    FieldType,
    StoreKind,
)
from vellum.domain.paths import join_field_path, parent_field_path
from vellum.domain.store_rows import (
    BooleanStoreRow,
    DateTimeStoreRow,
    FileStoreRow,
    FILE_VALUE_KEYS,
    JsonStoreRow,
    NumericStoreRow,
    RelationStoreRow,
    StoreRow,
    TextStoreRow,
)

logger = logging.getLogger(__name__)


# =============================================================================
# VALUE COERCION
# =============================================================================

def _as_uuid(value: Any, field: FieldDefinition, path: str) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidFieldValueError(field.type, path, value) from None


def _text_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    if not isinstance(value, str):
        raise InvalidFieldValueError(field.type, path, value)
    return TextStoreRow(text_value=value, **base)


# value_integer is a BIGINT column
BIGINT_MIN = -(2 ** 63)
BIGINT_MAX = 2 ** 63 - 1


def _numeric_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    if isinstance(value, bool):
        raise InvalidFieldValueError(field.type, path, value)

    field_type = field.field_type
    if field_type == FieldType.INTEGER:
        if not isinstance(value, int) or not BIGINT_MIN <= value <= BIGINT_MAX:
            raise InvalidFieldValueError(field.type, path, value)
        return NumericStoreRow(number_type="integer", value_integer=value, **base)

    if field_type == FieldType.DECIMAL:
        try:
            decimal_value = value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation:
            raise InvalidFieldValueError(field.type, path, value) from None
        if not decimal_value.is_finite():
            raise InvalidFieldValueError(field.type, path, value)
        return NumericStoreRow(number_type="decimal", value_decimal=decimal_value, **base)

    if not isinstance(value, (int, float)):
        raise InvalidFieldValueError(field.type, path, value)
    return NumericStoreRow(number_type="float", value_float=float(value), **base)


def _boolean_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    if not isinstance(value, bool):
        raise InvalidFieldValueError(field.type, path, value)
    return BooleanStoreRow(boolean_value=value, **base)


def _datetime_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    field_type = field.field_type
    try:
        if field_type == FieldType.DATE:
            if isinstance(value, datetime):
                value = value.date()
            elif isinstance(value, str):
                value = date.fromisoformat(value)
            if not isinstance(value, date):
                raise InvalidFieldValueError(field.type, path, value)
            return DateTimeStoreRow(date_type="date", value_date=value, **base)

        if field_type == FieldType.TIME:
            if isinstance(value, str):
                value = time.fromisoformat(value)
            if not isinstance(value, time):
                raise InvalidFieldValueError(field.type, path, value)
            return DateTimeStoreRow(date_type="time", value_time=value, **base)

        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if not isinstance(value, datetime):
            raise InvalidFieldValueError(field.type, path, value)
        return DateTimeStoreRow(date_type="datetime", value_timestamp_tz=value, **base)
    except ValueError:
        raise InvalidFieldValueError(field.type, path, value) from None


def _file_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    if not isinstance(value, Mapping):
        raise InvalidFieldValueError(field.type, path, value)
    columns = {key: value.get(key) for key in FILE_VALUE_KEYS}
    columns["file_id"] = _as_uuid(columns["file_id"], field, path)
    if columns["processing_status"] is None:
        columns["processing_status"] = "pending"
    columns["thumbnail_generated"] = bool(columns["thumbnail_generated"])
    return FileStoreRow(**columns, **base)


def _relation_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    if not isinstance(value, Mapping) or value.get("target_document_id") is None:
        raise InvalidFieldValueError(field.type, path, value)
    return RelationStoreRow(
        target_document_id=_as_uuid(value.get("target_document_id"), field, path),
        target_collection_id=_as_uuid(value.get("target_collection_id"), field, path),
        relationship_type=value.get("relationship_type") or "reference",
        cascade_delete=bool(value.get("cascade_delete", False)),
        **base,
    )


def _json_row(field: FieldDefinition, path: str, value: Any, base: Dict[str, Any]) -> StoreRow:
    object_keys = sorted(value.keys()) if isinstance(value, Mapping) else None
    return JsonStoreRow(json_value=value, object_keys=object_keys, **base)


ROW_BUILDERS: Dict[StoreKind, Callable[[FieldDefinition, str, Any, Dict[str, Any]], StoreRow]] = {
    StoreKind.TEXT: _text_row,
    StoreKind.NUMERIC: _numeric_row,
    StoreKind.BOOLEAN: _boolean_row,
    StoreKind.DATETIME: _datetime_row,
    StoreKind.FILE: _file_row,
    StoreKind.RELATION: _relation_row,
    StoreKind.JSON: _json_row,
}


def create_store_row(field: FieldDefinition, path: str, value: Any, locale: str) -> StoreRow:
    """Build the store row for one scalar value."""
    kind = field.store_kind
    if kind is None:
        raise UnsupportedFieldTypeError(field.type, path)
    base = {
        "field_path": path,
        "field_name": field.name,
        "locale": locale,
        "parent_path": parent_field_path(path),
        "field_type": field.type,
    }
    return ROW_BUILDERS[kind](field, path, value, base)


# =============================================================================
# BLOCK ELEMENTS
# =============================================================================

# Keys of a type-tagged element that are not block fields
BLOCK_ENVELOPE_KEYS = ("id", "type", "meta")


def resolve_block_element(
    field: FieldDefinition, element: Any, path: str
) -> Tuple[FieldDefinition, Union[Dict[str, Any], List[Dict[str, Any]]]]:
    """
    Identify the block definition and field data of one block-array element.

    Accepted shapes:
        {id, type: "block", name, fields, meta}   canonical
        {id, type: <blockName>, **fields}         as written by block.add
        {blockName: fields}                       compact

    ``fields`` is a dict, or a list of single-key dicts whose order is kept.
    """
    if not isinstance(element, Mapping):
        raise InvalidFieldValueError(field.type, path, element)

    tag = element.get("type")
    if tag == "block" and "name" in element:
        block_name = element["name"]
        data = element.get("fields")
    elif isinstance(tag, str) and field.get_field(tag) is not None:
        block_name = tag
        data = {key: value for key, value in element.items() if key not in BLOCK_ENVELOPE_KEYS}
    else:
        candidates = [key for key in element if field.get_field(key) is not None]
        if len(candidates) != 1:
            raise InvalidFieldValueError(field.type, path, element)
        block_name = candidates[0]
        data = element[block_name]

    block = field.get_field(block_name)
    if block is None:
        raise InvalidFieldValueError(field.type, path, element)

    if data is None:
        return block, {}
    if isinstance(data, list):
        if not all(isinstance(entry, Mapping) for entry in data):
            raise InvalidFieldValueError(field.type, path, element)
        return block, [dict(entry) for entry in data]
    if not isinstance(data, Mapping):
        raise InvalidFieldValueError(field.type, path, element)
    return block, dict(data)


def block_field_entries(
    block_path: str, data: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]
) -> List[Tuple[str, Mapping[str, Any]]]:
    """
    Pair block field data with the path its values are stored under.

    Dict data lives directly under the block path; list entries are kept
    apart by position (``content.0.photoBlock.1.alt``).
    """
    if isinstance(data, Mapping):
        return [(block_path, data)]
    return [(join_field_path(block_path, position), entry) for position, entry in enumerate(data)]


# =============================================================================
# WALK
# =============================================================================

def _is_locale_map(value: Any, locales: Sequence[str]) -> bool:
    return (
        isinstance(value, Mapping)
        and len(value) > 0
        and all(key in locales for key in value)
    )


def flatten_fields(
    document: Mapping[str, Any],
    collection: CollectionDefinition,
    default_locale: str = ALL_LOCALES,
    content_locales: Optional[Sequence[str]] = None,
) -> List[StoreRow]:
    """
    Flatten a document into store rows.

    Args:
        document: Nested document data
        collection: Collection definition the document conforms to
        default_locale: Locale recorded on values that are not locale maps
        content_locales: Locales a localized field may be keyed by
            (defaults to CONTENT_LOCALES)

    Returns:
        Store rows in document order

    Raises:
        UnsupportedFieldTypeError: a definition uses an unknown type
        InvalidFieldValueError: a value does not fit its field
    """
    locales = list(content_locales) if content_locales is not None else CONTENT_LOCALES
    rows: List[StoreRow] = []

    def flatten_value(field: FieldDefinition, value: Any, path: str) -> None:
        if value is None:
            return

        try:
            field_type = field.field_type
        except UnsupportedFieldTypeError:
            raise UnsupportedFieldTypeError(field.type, path) from None

        if field_type == FieldType.ARRAY:
            if not isinstance(value, list):
                raise InvalidFieldValueError(field.type, path, value)
            for index, element in enumerate(value):
                if element is None:
                    continue
                item_path = join_field_path(path, index)
                if field.is_block_array:
                    block, data = resolve_block_element(field, element, item_path)
                    block_path = join_field_path(item_path, block.name)
                    for entry_path, entry in block_field_entries(block_path, data):
                        flatten_members(block.fields, entry, entry_path)
                elif isinstance(element, Mapping):
                    flatten_members(field.fields, element, item_path)
                else:
                    raise InvalidFieldValueError(field.type, item_path, element)
            return

        if field_type in (FieldType.GROUP, FieldType.BLOCK):
            if not isinstance(value, Mapping):
                raise InvalidFieldValueError(field.type, path, value)
            flatten_members(field.fields, value, path)
            return

        if field.localized and _is_locale_map(value, locales):
            for locale, localized_value in value.items():
                if localized_value is not None:
                    rows.append(create_store_row(field, path, localized_value, locale))
            return

        rows.append(create_store_row(field, path, value, default_locale))

    def flatten_members(definitions: Sequence[FieldDefinition], data: Mapping[str, Any], base: str) -> None:
        for definition in definitions:
            flatten_value(definition, data.get(definition.name), join_field_path(base, definition.name))

    flatten_members(collection.fields, document, "")
    logger.debug(f"Flattened {len(rows)} field values for collection '{collection.path}'")
    return rows
