"""Tests for the patch engine."""

import pytest

from vellum.domain.fields import StoreKind
from vellum.domain.patches import (
    ArrayMovePatch,
    BlockAddPatch,
    FieldSetPatch,
    apply_patches,
)
from vellum.domain.services.field_flattener import ROW_BUILDERS
from vellum.domain.store_rows import STORE_ROW_CLASSES
from vellum.api.models import STORE_MODELS
from vellum.persistence.fan_in import KIND_COLUMNS


class TestFieldPatches:
    """field.set / field.clear"""

    def test_set_creates_intermediates(self):
        result = apply_patches(None, {}, [{"kind": "field.set", "path": "seo.description", "value": "D"}])
        assert result.ok
        assert result.doc == {"seo": {"description": "D"}}

    def test_set_inside_array_by_id(self):
        doc = {"links": [{"id": "a", "label": "A"}]}
        result = apply_patches(None, doc, [{"kind": "field.set", "path": "links[id=a].label", "value": "B"}])
        assert result.doc["links"][0]["label"] == "B"

    def test_clear_removes_key(self):
        result = apply_patches(None, {"title": "x", "views": 1}, [{"kind": "field.clear", "path": "title"}])
        assert result.doc == {"views": 1}

    def test_clear_missing_path_is_noop(self):
        result = apply_patches(None, {"title": "x"}, [{"kind": "field.clear", "path": "seo.description"}])
        assert result.ok
        assert result.doc == {"title": "x"}

    def test_typed_patches_accepted(self):
        result = apply_patches(None, {}, [FieldSetPatch(path="title", value="T")])
        assert result.doc == {"title": "T"}


class TestPartialSuccess:
    """A failing patch does not stop the others."""

    def test_one_error_at_failing_index(self):
        doc = {"title": "x", "items": [{"id": "a"}]}
        patches = [
            {"kind": "field.set", "path": "title", "value": "y"},
            {"kind": "array.remove", "path": "title", "itemId": "a"},
            {"kind": "field.set", "path": "views", "value": 3},
        ]
        result = apply_patches(None, doc, patches)

        assert not result.ok
        assert len(result.errors) == 1
        assert result.errors[0].index == 1
        assert "Expected array" in result.errors[0].message
        assert result.doc["title"] == "y"
        assert result.doc["views"] == 3

    def test_update_item_missing_id(self):
        """Patches around a failing updateItem still apply."""
        doc = {"items": [{"id": "a", "label": "A"}]}
        patches = [
            {"kind": "field.set", "path": "title", "value": "T"},
            {
                "kind": "array.updateItem",
                "path": "items",
                "itemId": "missing",
                "patches": [{"kind": "field.set", "path": "label", "value": "B"}],
            },
            {"kind": "array.insert", "path": "items", "item": {"id": "b"}},
        ]
        result = apply_patches(None, doc, patches)

        assert [error.index for error in result.errors] == [1]
        assert result.doc["title"] == "T"
        assert result.doc["items"] == [{"id": "a", "label": "A"}, {"id": "b"}]

    def test_input_not_mutated(self):
        doc = {"links": [{"id": "a", "label": "A"}]}
        apply_patches(None, doc, [
            {"kind": "field.set", "path": "links[id=a].label", "value": "B"},
            {"kind": "array.insert", "path": "links", "item": {"id": "b"}},
        ])
        assert doc == {"links": [{"id": "a", "label": "A"}]}

    def test_unknown_kind(self):
        result = apply_patches(None, {}, [{"kind": "field.rename", "path": "title"}])
        assert result.errors[0].message == "Unsupported patch kind: field.rename"

    def test_invalid_payload_recorded(self):
        result = apply_patches(None, {}, [{"kind": "array.move", "path": "items"}])
        assert len(result.errors) == 1

    def test_none_document(self):
        result = apply_patches(None, None, [{"kind": "field.set", "path": "a", "value": 1}])
        assert result.doc == {"a": 1}


class TestArrayPatches:
    """array.insert / move / remove / updateItem"""

    def test_insert_at_index_and_end(self):
        result = apply_patches(None, {"items": [{"id": "a"}]}, [
            {"kind": "array.insert", "path": "items", "index": 0, "item": {"id": "z"}},
            {"kind": "array.insert", "path": "items", "item": {"id": "end"}},
        ])
        assert [item["id"] for item in result.doc["items"]] == ["z", "a", "end"]

    def test_insert_creates_missing_array(self):
        result = apply_patches(None, {}, [{"kind": "array.insert", "path": "items", "item": 1}])
        assert result.doc == {"items": [1]}

    def test_move_by_id(self):
        doc = {"items": [{"id": "a"}, {"id": "b"}, {"id": "c"}]}
        result = apply_patches(None, doc, [ArrayMovePatch(path="items", item_id="c", to_index=0)])
        assert [item["id"] for item in result.doc["items"]] == ["c", "a", "b"]

    def test_move_falls_back_to_index(self):
        """Elements without ids are addressed by position."""
        doc = {"items": ["x", "y", "z"]}
        result = apply_patches(None, doc, [{"kind": "array.move", "path": "items", "itemId": "2", "toIndex": 0}])
        assert result.ok
        assert result.doc["items"] == ["z", "x", "y"]

    def test_move_unknown_item(self):
        result = apply_patches(None, {"items": [{"id": "a"}]}, [
            {"kind": "array.move", "path": "items", "itemId": "missing", "toIndex": 0},
        ])
        assert result.errors[0].message == "array.move: item with idOrIndex=missing not found"

    def test_remove_by_id(self):
        result = apply_patches(None, {"items": [{"id": "a"}, {"id": "b"}]}, [
            {"kind": "array.remove", "path": "items", "itemId": "a"},
            {"kind": "array.remove", "path": "items", "itemId": "unknown"},
        ])
        assert result.ok
        assert result.doc["items"] == [{"id": "b"}]

    def test_update_item(self):
        doc = {"items": [{"id": "a", "label": "A"}]}
        result = apply_patches(None, doc, [{
            "kind": "array.updateItem",
            "path": "items",
            "itemId": "a",
            "patches": [{"kind": "field.set", "path": "label", "value": "B"}],
        }])
        assert result.doc["items"] == [{"id": "a", "label": "B"}]

    def test_update_item_nested_failure(self):
        doc = {"items": [{"id": "a", "label": "A"}]}
        result = apply_patches(None, doc, [{
            "kind": "array.updateItem",
            "path": "items",
            "itemId": "a",
            "patches": [
                {"kind": "field.set", "path": "label", "value": "B"},
                {"kind": "nope", "path": "label"},
            ],
        }])
        assert len(result.errors) == 1
        assert "Unsupported patch kind: nope" in result.errors[0].message
        assert result.doc["items"] == [{"id": "a", "label": "A"}]


class TestBlockPatches:
    """block.add / move / remove / updateField"""

    def test_add_with_generated_id(self):
        result = apply_patches(None, {}, [BlockAddPatch(path="content", block_type="photoBlock", initial_value={"alt": "x"})])
        block = result.doc["content"][0]
        assert block["type"] == "photoBlock"
        assert block["alt"] == "x"
        assert block["id"]

    def test_add_at_index_with_id(self):
        doc = {"content": [{"id": "a", "type": "photoBlock"}]}
        result = apply_patches(None, doc, [{
            "kind": "block.add", "path": "content", "blockType": "richTextBlock", "blockId": "b", "index": 0,
        }])
        assert [block["id"] for block in result.doc["content"]] == ["b", "a"]

    def test_move_clamps_index(self):
        doc = {"content": [{"id": "a"}, {"id": "b"}]}
        result = apply_patches(None, doc, [{"kind": "block.move", "path": "content", "blockId": "a", "toIndex": 10}])
        assert [block["id"] for block in result.doc["content"]] == ["b", "a"]

    def test_move_unknown_block(self):
        result = apply_patches(None, {"content": []}, [{"kind": "block.move", "path": "content", "blockId": "a", "toIndex": 0}])
        assert "id=a not found" in result.errors[0].message

    def test_remove(self):
        doc = {"content": [{"id": "a"}, {"id": "b"}]}
        result = apply_patches(None, doc, [{"kind": "block.remove", "path": "content", "blockId": "a"}])
        assert result.doc["content"] == [{"id": "b"}]

    def test_update_field(self):
        doc = {"content": [{"id": "a", "type": "photoBlock", "caption": {}}]}
        result = apply_patches(None, doc, [{
            "kind": "block.updateField", "path": "content", "blockId": "a",
            "fieldPath": "caption.text", "value": "Hi",
        }])
        assert result.doc["content"][0]["caption"] == {"text": "Hi"}


class TestKindDispatch:
    """Every store kind is handled by each dispatch table."""

    @pytest.mark.parametrize("table", [ROW_BUILDERS, STORE_ROW_CLASSES, STORE_MODELS, KIND_COLUMNS])
    def test_every_kind_covered(self, table):
        assert set(table) == set(StoreKind)
