from vellum.domain.patches.apply_patches import ApplyPatchesResult, PatchError, apply_patches
from vellum.domain.patches.patch_types import (
    ArrayInsertPatch,
    ArrayMovePatch,
    ArrayRemovePatch,
    ArrayUpdateItemPatch,
    BlockAddPatch,
    BlockMovePatch,
    BlockRemovePatch,
    BlockUpdateFieldPatch,
    DocumentPatch,
    FieldClearPatch,
    FieldSetPatch,
)

__all__ = [
    "ApplyPatchesResult",
    "PatchError",
    "apply_patches",
    "ArrayInsertPatch",
    "ArrayMovePatch",
    "ArrayRemovePatch",
    "ArrayUpdateItemPatch",
    "BlockAddPatch",
    "BlockMovePatch",
    "BlockRemovePatch",
    "BlockUpdateFieldPatch",
    "DocumentPatch",
    "FieldClearPatch",
    "FieldSetPatch",
]
