"""
Stable identity for block-array elements.

Each block element gets one meta row keyed by its block path
(``content.2.photoBlock``). The row's ``item_id`` survives edits that
move or leave the block untouched, so identity never depends on position.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from vellum.core.ids import uuid7
from vellum.domain.fields import CollectionDefinition, FieldDefinition, FieldType
from vellum.domain.paths import join_field_path
from vellum.domain.services.field_flattener import block_field_entries, resolve_block_element


@dataclass
class BlockMetaRow:
    path: str
    item_id: str
    meta: Optional[Dict[str, Any]] = None
    type: str = "block"


def collect_block_meta(
    document: Mapping[str, Any],
    collection: CollectionDefinition,
    previous_item_ids: Optional[Mapping[str, str]] = None,
    id_factory: Callable[[], Any] = uuid7,
) -> List[BlockMetaRow]:
    """
    Emit one BlockMetaRow per block element in the document.

    The item id is the element's own ``id`` when it carries one, else the
    id recorded for the same path in the previous version, else a new id.
    """
    previous = previous_item_ids or {}
    rows: List[BlockMetaRow] = []

    def visit(definitions: Sequence[FieldDefinition], data: Mapping[str, Any], base: str) -> None:
        for definition in definitions:
            value = data.get(definition.name)
            if value is None:
                continue
            path = join_field_path(base, definition.name)

            if definition.is_block_array and isinstance(value, list):
                for index, element in enumerate(value):
                    if element is None:
                        continue
                    item_path = join_field_path(path, index)
                    block, fields = resolve_block_element(definition, element, item_path)
                    block_path = join_field_path(item_path, block.name)
                    item_id = element.get("id") or previous.get(block_path) or id_factory()
                    rows.append(BlockMetaRow(path=block_path, item_id=str(item_id), meta=element.get("meta")))
                    for entry_path, entry in block_field_entries(block_path, fields):
                        visit(block.fields, entry, entry_path)
            elif definition.type == FieldType.ARRAY.value and isinstance(value, list):
                for index, element in enumerate(value):
                    if isinstance(element, Mapping):
                        visit(definition.fields, element, join_field_path(path, index))
            elif definition.type in (FieldType.GROUP.value, FieldType.BLOCK.value) and isinstance(value, Mapping):
                visit(definition.fields, value, path)

    visit(collection.fields, document, "")
    return rows


def item_ids_by_path(rows: Sequence[BlockMetaRow]) -> Dict[str, str]:
    return {row.path: row.item_id for row in rows}
