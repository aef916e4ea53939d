"""Company knowledge base: companies, documents, chunks and voice settings

Revision ID: 001
Revises:
Create Date: 2026-01-12

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

EMBEDDING_DIMENSION = 1536


def _uuid_pk():
    return sa.Column(
        'id', postgresql.UUID(as_uuid=False), nullable=False,
        server_default=sa.text('gen_random_uuid()')
    )


def _timestamp(name):
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')
    )


def _metadata():
    return sa.Column(
        'metadata', postgresql.JSONB(), nullable=True, server_default=sa.text("'{}'::jsonb")
    )


SEARCH_FUNCTION = f"""
CREATE OR REPLACE FUNCTION search_company_knowledge(
  p_company_id uuid,
  p_query_embedding vector({EMBEDDING_DIMENSION}),
  p_limit integer DEFAULT 10,
  p_similarity_threshold float DEFAULT 0.7
)
RETURNS TABLE (
  id uuid,
  document_id uuid,
  content text,
  chunk_index integer,
  token_count integer,
  metadata jsonb,
  filename text,
  similarity float
)
LANGUAGE sql STABLE
AS $$
  SELECT
    c.id,
    c.document_id,
    c.content,
    c.chunk_index,
    c.token_count,
    c.metadata,
    d.filename,
    1 - (c.embedding <=> p_query_embedding) AS similarity
  FROM company_chunks c
  JOIN company_documents d ON d.id = c.document_id
  WHERE c.company_id = p_company_id
    AND 1 - (c.embedding <=> p_query_embedding) >= p_similarity_threshold
  ORDER BY c.embedding <=> p_query_embedding, c.document_id, c.chunk_index
  LIMIT p_limit;
$$;
"""

STATS_FUNCTION = """
CREATE OR REPLACE FUNCTION get_company_knowledge_stats(p_company_id uuid)
RETURNS TABLE (
  total_documents bigint,
  total_chunks bigint,
  total_tokens bigint,
  total_storage_bytes bigint,
  last_updated timestamp with time zone
)
LANGUAGE sql STABLE
AS $$
  SELECT
    COUNT(DISTINCT c.document_id),
    COUNT(*),
    COALESCE(SUM(c.token_count), 0),
    COALESCE(SUM(octet_length(c.content)), 0),
    MAX(c.created_at)
  FROM company_chunks c
  WHERE c.company_id = p_company_id;
$$;
"""


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    # Create companies table
    op.create_table(
        'companies',
        _uuid_pk(),
        sa.Column('owner_user_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_companies_owner_user_id', 'companies', ['owner_user_id'], unique=False)

    # Create voice settings table (one row per company)
    op.create_table(
        'company_voice_settings',
        _uuid_pk(),
        sa.Column('company_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('voice_guidelines', sa.Text(), nullable=True),
        sa.Column('brand_tone', sa.Text(), nullable=True),
        sa.Column('positioning', sa.Text(), nullable=True),
        _metadata(),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', name='uq_company_voice_settings_company_id'),
    )

    # Create documents table
    op.create_table(
        'company_documents',
        _uuid_pk(),
        sa.Column('company_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('filename', sa.Text(), nullable=False),
        sa.Column('file_type', sa.Text(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='processing'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('total_chunks', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('total_tokens', sa.Integer(), nullable=True, server_default='0'),
        _metadata(),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint(
            "file_type IN ('pdf', 'docx', 'txt', 'md', 'url')", name='check_file_type'
        ),
        sa.CheckConstraint(
            "status IN ('processing', 'completed', 'failed')", name='check_status'
        ),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_company_documents_company_id', 'company_documents', ['company_id'], unique=False
    )

    # Create chunks table; embedding column added below as pgvector type
    op.create_table(
        'company_chunks',
        _uuid_pk(),
        sa.Column('company_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        _metadata(),
        sa.Column('chunk_index', sa.Integer(), nullable=False),
        sa.Column('token_count', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['document_id'], ['company_documents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.execute(f'ALTER TABLE company_chunks ADD COLUMN embedding vector({EMBEDDING_DIMENSION})')
    op.create_index('idx_company_chunks_company_id', 'company_chunks', ['company_id'], unique=False)
    op.create_index('idx_company_chunks_document_id', 'company_chunks', ['document_id'], unique=False)
    op.execute(
        'CREATE INDEX idx_company_chunks_embedding ON company_chunks '
        'USING hnsw (embedding vector_cosine_ops) WITH (m = 16, ef_construction = 64)'
    )

    # Create memberships table
    op.create_table(
        'user_company_memberships',
        _uuid_pk(),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('role', sa.Text(), nullable=False, server_default='member'),
        _timestamp('created_at'),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name='check_role'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'company_id', name='uq_user_company_memberships'),
    )
    op.create_index(
        'idx_user_company_memberships_user_id', 'user_company_memberships', ['user_id'],
        unique=False
    )

    op.execute(SEARCH_FUNCTION)
    op.execute(STATS_FUNCTION)


def downgrade() -> None:
    op.execute('DROP FUNCTION IF EXISTS get_company_knowledge_stats(uuid)')
    op.execute(
        f'DROP FUNCTION IF EXISTS search_company_knowledge(uuid, vector({EMBEDDING_DIMENSION}), integer, float)'
    )

    op.drop_index('idx_user_company_memberships_user_id', table_name='user_company_memberships')
    op.drop_table('user_company_memberships')

    op.execute('DROP INDEX IF EXISTS idx_company_chunks_embedding')
    op.drop_index('idx_company_chunks_document_id', table_name='company_chunks')
    op.drop_index('idx_company_chunks_company_id', table_name='company_chunks')
    op.drop_table('company_chunks')

    op.drop_index('idx_company_documents_company_id', table_name='company_documents')
    op.drop_table('company_documents')

    op.drop_table('company_voice_settings')

    op.drop_index('idx_companies_owner_user_id', table_name='companies')
    op.drop_table('companies')
