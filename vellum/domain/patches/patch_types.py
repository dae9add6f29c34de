"""
Patch operation types.

Patches are discriminated on ``kind`` and accept the camelCase keys sent
by editors (``itemId``, ``toIndex``, ``blockType``...) as well as the
snake_case attribute names.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _PatchBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str


# =============================================================================
# FIELD PATCHES
# =============================================================================

class FieldSetPatch(_PatchBase):
    kind: Literal["field.set"] = "field.set"
    value: Any = None


class FieldClearPatch(_PatchBase):
    kind: Literal["field.clear"] = "field.clear"


# =============================================================================
# ARRAY PATCHES
# =============================================================================

class ArrayInsertPatch(_PatchBase):
    kind: Literal["array.insert"] = "array.insert"
    index: Optional[int] = None
    item: Any = None


class ArrayMovePatch(_PatchBase):
    kind: Literal["array.move"] = "array.move"
    item_id: str = Field(alias="itemId")
    to_index: Optional[int] = Field(default=None, alias="toIndex")


class ArrayRemovePatch(_PatchBase):
    kind: Literal["array.remove"] = "array.remove"
    item_id: str = Field(alias="itemId")


class ArrayUpdateItemPatch(_PatchBase):
    kind: Literal["array.updateItem"] = "array.updateItem"
    item_id: str = Field(alias="itemId")
    patches: list = Field(default_factory=list)


# =============================================================================
# BLOCK PATCHES
# =============================================================================

class BlockAddPatch(_PatchBase):
    kind: Literal["block.add"] = "block.add"
    block_type: str = Field(alias="blockType")
    block_id: Optional[str] = Field(default=None, alias="blockId")
    index: Optional[int] = None
    initial_value: Dict[str, Any] = Field(default_factory=dict, alias="initialValue")


class BlockMovePatch(_PatchBase):
    kind: Literal["block.move"] = "block.move"
    block_id: str = Field(alias="blockId")
    to_index: int = Field(alias="toIndex")


class BlockRemovePatch(_PatchBase):
    kind: Literal["block.remove"] = "block.remove"
    block_id: str = Field(alias="blockId")


class BlockUpdateFieldPatch(_PatchBase):
    kind: Literal["block.updateField"] = "block.updateField"
    block_id: str = Field(alias="blockId")
    field_path: str = Field(alias="fieldPath")
    value: Any = None


DocumentPatch = Annotated[
    Union[
        FieldSetPatch,
        FieldClearPatch,
        ArrayInsertPatch,
        ArrayMovePatch,
        ArrayRemovePatch,
        ArrayUpdateItemPatch,
        BlockAddPatch,
        BlockMovePatch,
        BlockRemovePatch,
        BlockUpdateFieldPatch,
    ],
    Field(discriminator="kind"),
]

PATCH_KINDS = frozenset({
    "field.set", "field.clear",
    "array.insert", "array.move", "array.remove", "array.updateItem",
    "block.add", "block.move", "block.remove", "block.updateField",
})

document_patch_adapter: TypeAdapter = TypeAdapter(DocumentPatch)
