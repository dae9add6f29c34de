"""Tests for the field flattener."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from vellum.domain.errors import InvalidFieldValueError, UnsupportedFieldTypeError
from vellum.domain.fields import CollectionDefinition, StoreKind
from vellum.domain.patches import apply_patches
from vellum.domain.services.field_flattener import BIGINT_MAX, flatten_fields
from vellum.domain.store_rows import (
    DateTimeStoreRow,
    FileStoreRow,
    JsonStoreRow,
    NumericStoreRow,
    RelationStoreRow,
    TextStoreRow,
)


def _by_path(rows):
    grouped = {}
    for row in rows:
        grouped.setdefault(row.field_path, []).append(row)
    return grouped


class TestScalarFields:
    """Scalar and localized fields."""

    def test_unlocalized_scalar_gets_default_locale(self, docs_definition):
        rows = flatten_fields({"views": 3}, docs_definition, "all")
        assert len(rows) == 1
        row = rows[0]
        assert isinstance(row, NumericStoreRow)
        assert row.field_path == "views"
        assert row.locale == "all"
        assert row.number_type == "integer"
        assert row.value_integer == 3
        assert row.parent_path is None

    def test_localized_map_emits_one_row_per_locale(self, docs_definition):
        rows = flatten_fields({"title": {"en": "Hello", "fr": "Bonjour"}}, docs_definition)
        assert [(r.locale, r.value) for r in rows] == [("en", "Hello"), ("fr", "Bonjour")]
        assert all(isinstance(r, TextStoreRow) for r in rows)

    def test_localized_plain_value_uses_default_locale(self, docs_definition):
        rows = flatten_fields({"title": "Hello"}, docs_definition, "en")
        assert [(r.locale, r.value) for r in rows] == [("en", "Hello")]

    def test_unlocalized_json_with_locale_keys_is_not_split(self, docs_definition):
        """Only fields declared localized are treated as locale maps."""
        rows = flatten_fields({"metadata": {"en": 1, "es": 2}}, docs_definition)
        assert len(rows) == 1
        assert isinstance(rows[0], JsonStoreRow)
        assert rows[0].value == {"en": 1, "es": 2}
        assert rows[0].object_keys == ["en", "es"]

    def test_null_and_missing_values_emit_nothing(self, docs_definition):
        rows = flatten_fields({"title": None, "views": None, "links": [None]}, docs_definition)
        assert rows == []

    def test_numeric_sub_kinds(self, docs_definition):
        rows = _by_path(flatten_fields(
            {"views": 1, "price": "19.99", "rating": 2}, docs_definition
        ))
        assert rows["views"][0].number_type == "integer"
        assert rows["price"][0].number_type == "decimal"
        assert rows["price"][0].value_decimal == Decimal("19.99")
        assert rows["rating"][0].number_type == "float"
        assert rows["rating"][0].value_float == 2.0

    def test_datetime_sub_kinds_accept_iso_strings(self, docs_definition):
        rows = _by_path(flatten_fields(
            {"publishedOn": "2024-01-15", "updatedAt": "2024-01-15T10:30:00+00:00"},
            docs_definition,
        ))
        published = rows["publishedOn"][0]
        assert isinstance(published, DateTimeStoreRow)
        assert published.date_type == "date"
        assert published.value_date == date(2024, 1, 15)
        updated = rows["updatedAt"][0]
        assert updated.date_type == "datetime"
        assert updated.value_timestamp_tz == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_file_value_is_one_composite_row(self, sample_document, docs_definition):
        rows = flatten_fields({"heroImage": sample_document["heroImage"]}, docs_definition)
        assert len(rows) == 1
        row = rows[0]
        assert isinstance(row, FileStoreRow)
        assert row.field_type == "image"
        assert row.filename == "hero.jpg"
        assert row.image_width == 1600
        assert row.processing_status == "complete"

    def test_relation_value(self, sample_document, docs_definition):
        rows = flatten_fields({"author": sample_document["author"]}, docs_definition)
        row = rows[0]
        assert isinstance(row, RelationStoreRow)
        assert row.kind == StoreKind.RELATION
        assert row.target_document_id == sample_document["author"]["target_document_id"]
        assert row.relationship_type == "reference"


class TestStructuralFields:
    """Groups, arrays and blocks."""

    def test_group_paths(self, docs_definition):
        rows = flatten_fields({"seo": {"description": "D"}}, docs_definition)
        assert rows[0].field_path == "seo.description"
        assert rows[0].parent_path == "seo"

    def test_array_item_paths(self, docs_definition):
        rows = flatten_fields(
            {"links": [{"label": "A", "url": "a"}, {"label": "B"}]}, docs_definition
        )
        assert [r.field_path for r in rows] == ["links.0.label", "links.0.url", "links.1.label"]
        assert rows[2].parent_path == "links.1"

    def test_block_paths_use_block_name(self, sample_document, docs_definition):
        rows = flatten_fields({"content": sample_document["content"]}, docs_definition)
        paths = sorted({r.field_path for r in rows})
        assert paths == [
            "content.0.richTextBlock.constrainedWidth",
            "content.0.richTextBlock.richText",
            "content.1.photoBlock.alt",
            "content.1.photoBlock.display",
            "content.1.photoBlock.photo",
        ]

    def test_canonical_block_shape(self, docs_definition):
        content = [{
            "id": "blk-1",
            "type": "block",
            "name": "photoBlock",
            "fields": [{"display": "full"}, {"alt": "Alt text"}],
            "meta": {"collapsed": True},
        }]
        rows = flatten_fields({"content": content}, docs_definition)
        assert [(r.field_path, r.value) for r in rows] == [
            ("content.0.photoBlock.0.display", "full"),
            ("content.0.photoBlock.1.alt", "Alt text"),
        ]

    def test_unknown_block_name_is_rejected(self, docs_definition):
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"content": [{"videoBlock": {"url": "x"}}]}, docs_definition)

    def test_canonical_block_with_dict_fields(self, docs_definition):
        content = [{"id": "blk-1", "type": "block", "name": "photoBlock", "fields": {"alt": "A"}}]
        rows = flatten_fields({"content": content}, docs_definition)
        assert [(r.field_path, r.value) for r in rows] == [("content.0.photoBlock.alt", "A")]

    def test_type_tagged_block_element(self, docs_definition):
        content = [{"id": "blk-1", "type": "photoBlock", "display": "full", "alt": "Alt text"}]
        rows = flatten_fields({"content": content}, docs_definition)
        assert [(r.field_path, r.value) for r in rows] == [
            ("content.0.photoBlock.display", "full"),
            ("content.0.photoBlock.alt", "Alt text"),
        ]

    def test_block_add_output_flattens(self, docs_definition):
        result = apply_patches(None, {"title": "T"}, [{
            "kind": "block.add",
            "path": "content",
            "blockType": "photoBlock",
            "blockId": "b1",
            "initialValue": {"alt": "From patch"},
        }])
        assert result.ok
        rows = flatten_fields(result.doc, docs_definition, "en")
        assert [(r.field_path, r.value) for r in rows] == [
            ("title", "T"),
            ("content.0.photoBlock.alt", "From patch"),
        ]

    def test_ambiguous_compact_element_is_rejected(self, docs_definition):
        element = {"photoBlock": {"alt": "x"}, "richTextBlock": {"constrainedWidth": True}}
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"content": [element]}, docs_definition)

    def test_list_fields_must_hold_objects(self, docs_definition):
        content = [{"type": "block", "name": "photoBlock", "fields": ["full"]}]
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"content": content}, docs_definition)


class TestErrors:
    """Schema errors abort flattening."""

    def test_unsupported_field_type(self):
        collection = CollectionDefinition.model_validate({
            "path": "widgets",
            "labels": {"singular": "Widget", "plural": "Widgets"},
            "fields": [{"name": "color", "type": "colorPicker"}],
        })
        with pytest.raises(UnsupportedFieldTypeError, match="Unsupported field type: colorPicker"):
            flatten_fields({"color": "#fff"}, collection)

    def test_invalid_integer_value(self, docs_definition):
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"views": "many"}, docs_definition)

    def test_boolean_is_not_an_integer(self, docs_definition):
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"views": True}, docs_definition)

    def test_array_requires_list(self, docs_definition):
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"links": {"label": "x"}}, docs_definition)

    def test_integer_beyond_bigint_rejected(self, docs_definition):
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"views": BIGINT_MAX + 1}, docs_definition)

    def test_large_integer_kept_exact(self, docs_definition):
        rows = flatten_fields({"views": 2 ** 40}, docs_definition)
        assert rows[0].value_integer == 1099511627776

    def test_decimal_keeps_every_place(self, docs_definition):
        rows = flatten_fields({"price": Decimal("3.14159")}, docs_definition)
        assert rows[0].value_decimal == Decimal("3.14159")

    @pytest.mark.parametrize("value", [Decimal("NaN"), "Infinity", "abc"])
    def test_non_finite_decimal_rejected(self, docs_definition, value):
        with pytest.raises(InvalidFieldValueError):
            flatten_fields({"price": value}, docs_definition)
