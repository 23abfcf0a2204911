"""Create abuse_report, block_directive and audit_log tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'abuse_report',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('feedback_item_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('recipient_hash', sa.Text(), nullable=False),
        sa.Column('fingerprint', sa.Text(), nullable=False),
        sa.Column('directive_level', sa.Text(), nullable=False),
        sa.Column('directive_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['feedback_item_id'], ['feedback_item.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('feedback_item_id', name='uq_abuse_report_item'),
        sa.CheckConstraint("directive_level IN ('sender_specific', 'global')", name='ck_abuse_report_level'),
    )
    op.create_index('ix_abuse_report_recipient_hash', 'abuse_report', ['recipient_hash'])

    op.create_table(
        'block_directive',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('level', sa.Text(), nullable=False),
        sa.Column('recipient_hash', sa.Text(), nullable=False),
        sa.Column('fingerprint', sa.Text(), nullable=True),
        sa.Column('report_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('lifted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['report_id'], ['abuse_report.id'], ondelete='SET NULL'),
        sa.CheckConstraint("level IN ('sender_specific', 'global')", name='ck_block_directive_level'),
        sa.CheckConstraint(
            "level = 'global' OR fingerprint IS NOT NULL",
            name='ck_block_directive_fingerprint'
        ),
    )
    op.create_index('ix_block_directive_recipient', 'block_directive', ['recipient_hash', 'fingerprint'])

    op.create_table(
        'audit_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=True),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_action_created_at', 'audit_log', ['action', 'created_at'])
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'])


def downgrade():
    op.drop_table('audit_log')
    op.drop_table('block_directive')
    op.drop_table('abuse_report')
