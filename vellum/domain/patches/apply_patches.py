"""
Patch engine.

Applies structural edits to a deep copy of a reconstructed document. Each
patch is applied independently: a failing patch is recorded in `errors`
with its position and the remaining patches still run.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel

from vellum.domain.errors import PatchApplicationError, PathResolutionError
from vellum.domain.fields import CollectionDefinition
from vellum.domain.paths import ensure_path, find_index_by_id, get_by_segments, parse_patch_path
from vellum.domain.patches.patch_types import (
    ArrayInsertPatch,
    ArrayMovePatch,
    ArrayRemovePatch,
    ArrayUpdateItemPatch,
    BlockAddPatch,
    BlockMovePatch,
    BlockRemovePatch,
    BlockUpdateFieldPatch,
    FieldClearPatch,
    FieldSetPatch,
    PATCH_KINDS,
    document_patch_adapter,
)

logger = logging.getLogger(__name__)


@dataclass
class PatchError:
    index: int
    message: str
    patch: Any = None


@dataclass
class ApplyPatchesResult:
    doc: Dict[str, Any]
    errors: List[PatchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def coerce_patch(raw: Any) -> BaseModel:
    """Validate a dict patch into its typed model."""
    if isinstance(raw, BaseModel):
        return raw
    kind = raw.get("kind") if isinstance(raw, Mapping) else None
    if kind not in PATCH_KINDS:
        raise PatchApplicationError(f"Unsupported patch kind: {kind}")
    return document_patch_adapter.validate_python(raw)


def resolve_array_at_path(doc: Dict[str, Any], path: str) -> List[Any]:
    """Return the array at `path`, creating it (and its parents) if missing."""
    segments = parse_patch_path(path)
    if not segments:
        raise PathResolutionError(f"Empty path '{path}'")
    parent, key = ensure_path(doc, segments)
    value = parent[key]
    if isinstance(value, list):
        return value
    if value is None or value == {}:
        parent[key] = []
        return parent[key]
    raise PathResolutionError(f"Expected array at path '{path}'")


def _require_index(items: List[Any], item_id: str) -> int:
    index = find_index_by_id(items, item_id)
    if index == -1:
        raise PathResolutionError(f"Item with id={item_id} not found in array")
    return index


def _set_field(doc: Any, path: str, value: Any) -> None:
    segments = parse_patch_path(path)
    if not segments:
        raise PathResolutionError(f"Empty path '{path}'")
    parent, key = ensure_path(doc, segments)
    parent[key] = copy.deepcopy(value)


def _clear_field(doc: Any, path: str) -> None:
    parent, key = get_by_segments(doc, parse_patch_path(path))
    if isinstance(parent, list):
        if 0 <= key < len(parent):
            parent.pop(key)
    elif isinstance(parent, dict):
        parent.pop(key, None)


def apply_patch(model: Optional[CollectionDefinition], doc: Dict[str, Any], patch: BaseModel) -> None:
    """Apply one typed patch to `doc` in place."""
    if isinstance(patch, FieldSetPatch):
        _set_field(doc, patch.path, patch.value)

    elif isinstance(patch, FieldClearPatch):
        _clear_field(doc, patch.path)

    elif isinstance(patch, ArrayInsertPatch):
        items = resolve_array_at_path(doc, patch.path)
        index = len(items) if patch.index is None else patch.index
        items.insert(index, copy.deepcopy(patch.item))

    elif isinstance(patch, ArrayMovePatch):
        items = resolve_array_at_path(doc, patch.path)
        from_index = find_index_by_id(items, patch.item_id)
        if from_index == -1 and patch.item_id.isdigit():
            from_index = int(patch.item_id)
        if from_index < 0 or from_index >= len(items):
            raise PathResolutionError(f"array.move: item with idOrIndex={patch.item_id} not found")
        item = items.pop(from_index)
        to_index = len(items) if patch.to_index is None else patch.to_index
        items.insert(to_index, item)

    elif isinstance(patch, ArrayRemovePatch):
        items = resolve_array_at_path(doc, patch.path)
        index = find_index_by_id(items, patch.item_id)
        if index != -1:
            items.pop(index)

    elif isinstance(patch, ArrayUpdateItemPatch):
        items = resolve_array_at_path(doc, patch.path)
        index = _require_index(items, patch.item_id)
        nested = apply_patches(model, items[index], patch.patches)
        if nested.errors:
            raise PatchApplicationError("; ".join(error.message for error in nested.errors))
        items[index] = nested.doc

    elif isinstance(patch, BlockAddPatch):
        items = resolve_array_at_path(doc, patch.path)
        block = {"id": patch.block_id or str(uuid4()), "type": patch.block_type}
        block.update(copy.deepcopy(patch.initial_value))
        index = len(items) if patch.index is None else patch.index
        items.insert(index, block)

    elif isinstance(patch, BlockMovePatch):
        items = resolve_array_at_path(doc, patch.path)
        item = items.pop(_require_index(items, patch.block_id))
        to_index = max(0, min(patch.to_index, len(items)))
        items.insert(to_index, item)

    elif isinstance(patch, BlockRemovePatch):
        items = resolve_array_at_path(doc, patch.path)
        index = find_index_by_id(items, patch.block_id)
        if index != -1:
            items.pop(index)

    elif isinstance(patch, BlockUpdateFieldPatch):
        items = resolve_array_at_path(doc, patch.path)
        block = items[_require_index(items, patch.block_id)]
        _set_field(block, patch.field_path, patch.value)

    else:
        raise PatchApplicationError(f"Unsupported patch kind: {getattr(patch, 'kind', None)}")


def apply_patches(
    model: Optional[CollectionDefinition],
    document: Optional[Mapping[str, Any]],
    patches: Sequence[Any],
) -> ApplyPatchesResult:
    """
    Apply patches in order to a copy of `document`.

    Args:
        model: Collection definition of the document being edited
        document: Reconstructed document; never mutated
        patches: Typed patches or their dict form

    Returns:
        ApplyPatchesResult with the patched copy and per-patch errors
    """
    doc = copy.deepcopy(dict(document)) if document is not None else {}
    errors: List[PatchError] = []

    for index, raw in enumerate(patches):
        try:
            apply_patch(model, doc, coerce_patch(raw))
        except Exception as exc:
            logger.debug(f"Patch {index} failed: {exc}")
            errors.append(PatchError(index=index, message=str(exc), patch=raw))

    return ApplyPatchesResult(doc=doc, errors=errors)
