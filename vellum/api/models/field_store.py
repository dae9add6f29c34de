"""
Typed field store tables.

Seven parallel tables, one per scalar kind. Every row holds one value for
one (document version, field path, locale); a value never spans two
tables. Keeping the kinds apart lets each table carry its own indexes
(text search on store_text, range scans on store_numeric...).
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, Date, DateTime, Float, ForeignKey,
    Index, Integer, Numeric, String, Text, Time, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, declared_attr
from sqlalchemy.sql import func

from vellum.api.models.types import JSONVariant, utcnow
from vellum.core.database import Base
from vellum.core.ids import uuid7
from vellum.domain.fields import ALL_LOCALES, StoreKind


class FieldStoreMixin:
    """Columns shared by every store table."""

    id = Column(Uuid, primary_key=True, default=uuid7)

    @declared_attr
    def document_version_id(cls):
        return Column(
            Uuid,
            ForeignKey("document_versions.id", ondelete="CASCADE"),
            nullable=False,
        )

    @declared_attr
    def collection_id(cls):
        return Column(
            Uuid,
            ForeignKey("collections.id", ondelete="CASCADE"),
            nullable=False,
        )

    field_path = Column(String(500), nullable=False, doc="Dotted path, e.g. 'images.0.alt'")
    field_name = Column(String(255), nullable=False)
    field_type = Column(String(50), nullable=False, doc="Schema field type, e.g. 'image'")
    locale = Column(String(10), nullable=False, default=ALL_LOCALES)
    parent_path = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    @declared_attr
    def __table_args__(cls):
        name = cls.__tablename__
        return (
            UniqueConstraint(
                "document_version_id", "field_path", "locale",
                name=f"uq_{name}_version_path_locale"
            ),
            Index(f"idx_{name}_version", "document_version_id"),
            Index(f"idx_{name}_collection_path", "collection_id", "field_path"),
        ) + tuple(getattr(cls, "__extra_table_args__", ()))


# =============================================================================
# SCALAR STORES
# =============================================================================

class TextStore(FieldStoreMixin, Base):
    __tablename__ = "store_text"

    value: Mapped[str] = Column(Text, nullable=False)
    word_count: Mapped[int] = Column(Integer, nullable=False, default=0)


class NumericStore(FieldStoreMixin, Base):
    __tablename__ = "store_numeric"
    __extra_table_args__ = (
        CheckConstraint(
            "number_type IN ('integer', 'decimal', 'float')",
            name="ck_store_numeric_number_type"
        ),
        Index("idx_store_numeric_integer", "value_integer"),
    )

    number_type: Mapped[str] = Column(String(10), nullable=False)
    value_integer: Mapped[Optional[int]] = Column(BigInteger, nullable=True)
    value_decimal: Mapped[Optional[Decimal]] = Column(Numeric, nullable=True)
    value_float: Mapped[Optional[float]] = Column(Float, nullable=True)


class BooleanStore(FieldStoreMixin, Base):
    __tablename__ = "store_boolean"

    value: Mapped[bool] = Column(Boolean, nullable=False)


class DateTimeStore(FieldStoreMixin, Base):
    __tablename__ = "store_datetime"
    __extra_table_args__ = (
        CheckConstraint(
            "date_type IN ('date', 'time', 'datetime')",
            name="ck_store_datetime_date_type"
        ),
        Index("idx_store_datetime_timestamp", "value_timestamp_tz"),
    )

    date_type: Mapped[str] = Column(String(10), nullable=False)
    value_date: Mapped[Optional[date]] = Column(Date, nullable=True)
    value_time: Mapped[Optional[time]] = Column(Time, nullable=True)
    value_timestamp_tz: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)


# =============================================================================
# COMPOSITE STORES
# =============================================================================

class FileStore(FieldStoreMixin, Base):
    __tablename__ = "store_file"

    file_id: Mapped[Optional[UUID]] = Column(Uuid, nullable=True)
    filename: Mapped[Optional[str]] = Column(String(255), nullable=True)
    original_filename: Mapped[Optional[str]] = Column(String(255), nullable=True)
    mime_type: Mapped[Optional[str]] = Column(String(100), nullable=True)
    file_size: Mapped[Optional[int]] = Column(BigInteger, nullable=True)
    storage_provider: Mapped[Optional[str]] = Column(String(50), nullable=True)
    storage_path: Mapped[Optional[str]] = Column(Text, nullable=True)
    storage_url: Mapped[Optional[str]] = Column(Text, nullable=True)
    file_hash: Mapped[Optional[str]] = Column(String(64), nullable=True)
    image_width: Mapped[Optional[int]] = Column(Integer, nullable=True)
    image_height: Mapped[Optional[int]] = Column(Integer, nullable=True)
    image_format: Mapped[Optional[str]] = Column(String(20), nullable=True)
    processing_status: Mapped[str] = Column(String(20), nullable=False, default="pending")
    thumbnail_generated: Mapped[bool] = Column(Boolean, nullable=False, default=False)


class RelationStore(FieldStoreMixin, Base):
    """Reference to a logical document; always resolves to its current version."""

    __tablename__ = "store_relation"
    __extra_table_args__ = (
        Index("idx_store_relation_target", "target_document_id"),
    )

    target_document_id: Mapped[UUID] = Column(Uuid, nullable=False)
    target_collection_id: Mapped[Optional[UUID]] = Column(Uuid, nullable=True)
    relationship_type: Mapped[str] = Column(String(50), nullable=False, default="reference")
    cascade_delete: Mapped[bool] = Column(Boolean, nullable=False, default=False)


class JsonStore(FieldStoreMixin, Base):
    """Opaque structured values: rich text, json and object fields."""

    __tablename__ = "store_json"

    value: Mapped[Any] = Column(JSONVariant, nullable=False)
    json_schema: Mapped[Optional[Dict[str, Any]]] = Column(JSONVariant, nullable=True)
    object_keys: Mapped[Optional[List[str]]] = Column(JSONVariant, nullable=True)


STORE_MODELS: Dict[StoreKind, Type[FieldStoreMixin]] = {
    StoreKind.TEXT: TextStore,
    StoreKind.NUMERIC: NumericStore,
    StoreKind.BOOLEAN: BooleanStore,
    StoreKind.DATETIME: DateTimeStore,
    StoreKind.FILE: FileStore,
    StoreKind.RELATION: RelationStore,
    StoreKind.JSON: JsonStore,
}
