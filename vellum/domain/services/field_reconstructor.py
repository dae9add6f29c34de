"""
Field reconstructor - the inverse of the flattener.

Rows are grouped by field path and written back into a nested document.
Index segments create arrays; several rows under the same array index
merge into one element object.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from vellum.core.config import DEFAULT_CONTENT_LOCALE
from vellum.domain.fields import ALL_LOCALES, CollectionDefinition, FieldDefinition, FieldType
from vellum.domain.paths import ensure_path, join_field_path, parse_field_path
from vellum.domain.services.block_meta import BlockMetaRow
from vellum.domain.store_rows import StoreRow


def group_rows_by_path(rows: Iterable[StoreRow]) -> Dict[str, List[StoreRow]]:
    grouped: Dict[str, List[StoreRow]] = {}
    for row in rows:
        grouped.setdefault(row.field_path, []).append(row)
    return grouped


def select_value(rows: Sequence[StoreRow], locale: str = ALL_LOCALES) -> Any:
    """
    Pick the value for one field path.

    Several locale rows become a ``{locale: value}`` map when the caller
    asked for every locale, or for one of the locales present. Otherwise a
    single value is chosen: the requested locale, then the catch-all
    locale, then the default content locale, then the first row.
    """
    localized = [row for row in rows if row.locale != ALL_LOCALES]
    if len(rows) > 1 and localized:
        if locale == ALL_LOCALES or any(row.locale == locale for row in localized):
            return {row.locale: row.value for row in localized}

    for candidate in (locale, ALL_LOCALES, DEFAULT_CONTENT_LOCALE):
        for row in rows:
            if row.locale == candidate:
                return row.value
    return rows[0].value


def set_value(document: Dict[str, Any], path: str, value: Any) -> None:
    parent, key = ensure_path(document, parse_field_path(path))
    if parent is None:
        return
    existing = parent[key]
    if isinstance(parent, list) and isinstance(existing, dict) and isinstance(value, dict):
        existing.update(value)
    else:
        parent[key] = value


def attach_block_meta(
    document: Dict[str, Any],
    collection: CollectionDefinition,
    block_meta: Mapping[str, BlockMetaRow],
) -> Dict[str, Any]:
    """
    Wrap block elements back into ``{id, type, name, fields, meta}``.

    Block fields stored by position come back as a list of entries.
    """

    def visit(definitions: Sequence[FieldDefinition], data: Dict[str, Any], base: str) -> None:
        for definition in definitions:
            value = data.get(definition.name)
            if value is None:
                continue
            path = join_field_path(base, definition.name)

            if definition.is_block_array and isinstance(value, list):
                for index, element in enumerate(value):
                    if not isinstance(element, dict):
                        continue
                    block_name = next((key for key in element if definition.get_field(key)), None)
                    if block_name is None:
                        continue
                    block = definition.get_field(block_name)
                    block_path = join_field_path(path, index, block_name)
                    fields = element[block_name]
                    if isinstance(fields, list):
                        # entries were stored by position under the block path
                        fields = [entry if isinstance(entry, dict) else {} for entry in fields]
                        for position, entry in enumerate(fields):
                            visit(block.fields, entry, join_field_path(block_path, position))
                    else:
                        fields = fields if isinstance(fields, dict) else {}
                        visit(block.fields, fields, block_path)
                    meta = block_meta.get(block_path)
                    value[index] = {
                        "id": meta.item_id if meta else None,
                        "type": "block",
                        "name": block_name,
                        "fields": fields,
                        "meta": meta.meta if meta else None,
                    }
            elif definition.type == FieldType.ARRAY.value and isinstance(value, list):
                for index, element in enumerate(value):
                    if isinstance(element, dict):
                        visit(definition.fields, element, join_field_path(path, index))
            elif definition.type in (FieldType.GROUP.value, FieldType.BLOCK.value) and isinstance(value, dict):
                visit(definition.fields, value, path)

    visit(collection.fields, document, "")
    return document


def reconstruct_fields(
    rows: Iterable[StoreRow],
    locale: str = ALL_LOCALES,
    collection: Optional[CollectionDefinition] = None,
    block_meta: Optional[Mapping[str, BlockMetaRow]] = None,
) -> Dict[str, Any]:
    """
    Rebuild a nested document from store rows.

    Args:
        rows: Store rows for a single document version
        locale: Requested locale, or "all" for locale maps
        collection: When given, block elements are wrapped with their meta
        block_meta: Block meta rows keyed by block path

    Returns:
        The reconstructed document
    """
    document: Dict[str, Any] = {}
    for path, group in group_rows_by_path(rows).items():
        set_value(document, path, select_value(group, locale))

    if collection is not None:
        attach_block_meta(document, collection, block_meta or {})
    return document
