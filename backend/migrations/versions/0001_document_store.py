"""documents table backing the SQL document store

Revision ID: 0001_document_store
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = '0001_document_store'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    # Tables created by SqlDocumentStore.create_schema() are adopted as-is
    if inspect(bind).has_table('documents'):
        return
    op.create_table('documents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('collection', sa.String(length=255), nullable=False),
        sa.Column('doc_id', sa.String(length=128), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('collection', 'doc_id', name='uq_document_path'),
    )
    op.create_index('ix_documents_collection', 'documents', ['collection'])


def downgrade():
    op.drop_index('ix_documents_collection', table_name='documents')
    op.drop_table('documents')
