"""create document storage tables

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19

Collections, logical documents, immutable document versions, the seven
typed field stores, block meta and document relationships, plus the
current_documents view (latest non-tombstone version per document).
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from vellum.api.models.document import current_documents_view_sql

# revision identifiers, used by Alembic.
revision = '20261019_001'
down_revision = None
branch_labels = None
depends_on = None


STORE_TABLES = (
    'store_text', 'store_numeric', 'store_boolean', 'store_datetime',
    'store_file', 'store_relation', 'store_json',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def _store_columns():
    """Columns every typed store table starts with."""
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_version_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('document_versions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('collections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_path', sa.String(500), nullable=False),
        sa.Column('field_name', sa.String(255), nullable=False),
        sa.Column('field_type', sa.String(50), nullable=False),
        sa.Column('locale', sa.String(10), nullable=False, server_default='all'),
        sa.Column('parent_path', sa.String(500), nullable=True),
        *_timestamps(),
    ]


def _store_table(name, *columns, constraints=()):
    op.create_table(
        name,
        *_store_columns(),
        *columns,
        sa.UniqueConstraint('document_version_id', 'field_path', 'locale',
                            name=f'uq_{name}_version_path_locale'),
        *constraints,
    )
    op.create_index(f'idx_{name}_version', name, ['document_version_id'])
    op.create_index(f'idx_{name}_collection_path', name, ['collection_id', 'field_path'])


def upgrade() -> None:
    # Collections
    op.create_table(
        'collections',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('path', sa.String(255), nullable=False, unique=True),
        sa.Column('singular', sa.String(255), nullable=False),
        sa.Column('plural', sa.String(255), nullable=False),
        sa.Column('config', postgresql.JSONB, nullable=False),
        *_timestamps(),
    )

    # Logical documents
    op.create_table(
        'documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('collections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_documents_collection_id', 'documents', ['collection_id'])

    # Versions
    op.create_table(
        'document_versions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('collections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('path', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(20), nullable=False, server_default='create'),
        sa.Column('status', sa.String(50), nullable=False, server_default='draft'),
        sa.Column('is_deleted', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('change_summary', sa.Text, nullable=True),
        sa.CheckConstraint("event_type IN ('create', 'update', 'delete')",
                           name='ck_document_versions_event_type'),
    )
    op.create_index('idx_document_versions_document', 'document_versions', ['document_id', 'id'])
    op.create_index('idx_document_versions_collection_path', 'document_versions', ['collection_id', 'path'])

    # Relationships between logical documents
    op.create_table(
        'document_relationships',
        sa.Column('parent_document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('child_document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('parent_document_id', 'child_document_id', name='pk_document_relationships'),
    )
    op.create_index('ix_document_relationships_child_document_id', 'document_relationships',
                    ['child_document_id'])

    # Typed stores
    _store_table(
        'store_text',
        sa.Column('value', sa.Text, nullable=False),
        sa.Column('word_count', sa.Integer, nullable=False, server_default='0'),
    )
    _store_table(
        'store_numeric',
        sa.Column('number_type', sa.String(10), nullable=False),
        sa.Column('value_integer', sa.BigInteger, nullable=True),
        sa.Column('value_decimal', sa.Numeric, nullable=True),
        sa.Column('value_float', sa.Float, nullable=True),
        constraints=(
            sa.CheckConstraint("number_type IN ('integer', 'decimal', 'float')",
                               name='ck_store_numeric_number_type'),
        ),
    )
    op.create_index('idx_store_numeric_integer', 'store_numeric', ['value_integer'])
    _store_table(
        'store_boolean',
        sa.Column('value', sa.Boolean, nullable=False),
    )
    _store_table(
        'store_datetime',
        sa.Column('date_type', sa.String(10), nullable=False),
        sa.Column('value_date', sa.Date, nullable=True),
        sa.Column('value_time', sa.Time, nullable=True),
        sa.Column('value_timestamp_tz', sa.DateTime(timezone=True), nullable=True),
        constraints=(
            sa.CheckConstraint("date_type IN ('date', 'time', 'datetime')",
                               name='ck_store_datetime_date_type'),
        ),
    )
    op.create_index('idx_store_datetime_timestamp', 'store_datetime', ['value_timestamp_tz'])
    _store_table(
        'store_file',
        sa.Column('file_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('filename', sa.String(255), nullable=True),
        sa.Column('original_filename', sa.String(255), nullable=True),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.BigInteger, nullable=True),
        sa.Column('storage_provider', sa.String(50), nullable=True),
        sa.Column('storage_path', sa.Text, nullable=True),
        sa.Column('storage_url', sa.Text, nullable=True),
        sa.Column('file_hash', sa.String(64), nullable=True),
        sa.Column('image_width', sa.Integer, nullable=True),
        sa.Column('image_height', sa.Integer, nullable=True),
        sa.Column('image_format', sa.String(20), nullable=True),
        sa.Column('processing_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('thumbnail_generated', sa.Boolean, nullable=False, server_default=sa.false()),
    )
    _store_table(
        'store_relation',
        sa.Column('target_document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('target_collection_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('relationship_type', sa.String(50), nullable=False, server_default='reference'),
        sa.Column('cascade_delete', sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index('idx_store_relation_target', 'store_relation', ['target_document_id'])
    _store_table(
        'store_json',
        sa.Column('value', postgresql.JSONB, nullable=False),
        sa.Column('json_schema', postgresql.JSONB, nullable=True),
        sa.Column('object_keys', postgresql.JSONB, nullable=True),
    )

    # Text search on the text store only
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
    op.execute(
        "CREATE INDEX idx_store_text_value_trgm ON store_text USING gin (value gin_trgm_ops)"
    )

    # Block meta
    op.create_table(
        'store_meta',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_version_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('document_versions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('collections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='block'),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('item_id', sa.String(100), nullable=False),
        sa.Column('meta', postgresql.JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('document_version_id', 'type', 'path', name='uq_store_meta_version_type_path'),
    )
    op.create_index('idx_store_meta_version', 'store_meta', ['document_version_id'])
    op.create_index('idx_store_meta_item', 'store_meta', ['item_id'])

    op.execute(current_documents_view_sql('postgresql'))


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS current_documents")
    op.drop_table('store_meta')
    op.execute("DROP INDEX IF EXISTS idx_store_text_value_trgm")
    for name in reversed(STORE_TABLES):
        op.drop_table(name)
    op.drop_table('document_relationships')
    op.drop_table('document_versions')
    op.drop_table('documents')
    op.drop_table('collections')
