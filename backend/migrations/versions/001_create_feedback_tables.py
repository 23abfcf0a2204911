"""Create feedback_item, feedback_transition, feedback_response and access_token tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'feedback_item',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('status', sa.Text(), server_default='DRAFT', nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('block_category', sa.Text(), nullable=True),
        sa.Column('block_reason', sa.Text(), nullable=True),
        sa.Column('raw_text', sa.Text(), nullable=True),
        sa.Column('improved_text', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('fingerprint', sa.Text(), nullable=False),
        sa.Column('recipient_hash', sa.Text(), nullable=False),
        sa.Column('recipient_address_encrypted', sa.Text(), nullable=True),
        sa.Column('sender_identity_encrypted', sa.Text(), nullable=True),
        sa.Column('sender_identity_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('pipeline_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_pipeline_error', sa.Text(), nullable=True),
        sa.Column('provider', sa.Text(), nullable=True),
        sa.Column('delivery_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_delivery_error', sa.Text(), nullable=True),
        sa.Column('delivery_receipt_id', sa.Text(), nullable=True),
        sa.Column('delivery_claimed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('admitted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('processing_started_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('awaiting_approval_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('approved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('redacted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('DRAFT', 'ADMITTED', 'PROCESSING', 'AWAITING_APPROVAL', 'APPROVED', 'DELIVERED', 'REJECTED')",
            name='ck_feedback_item_status'
        ),
    )
    op.create_index('ix_feedback_item_status', 'feedback_item', ['status'])
    op.create_index('ix_feedback_item_recipient_hash', 'feedback_item', ['recipient_hash'])
    op.create_index('ix_feedback_item_created_at', 'feedback_item', ['created_at'])

    op.create_table(
        'feedback_transition',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('feedback_item_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('from_status', sa.Text(), nullable=True),
        sa.Column('to_status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['feedback_item_id'], ['feedback_item.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_feedback_transition_item_created', 'feedback_transition', ['feedback_item_id', 'created_at'])

    op.create_table(
        'feedback_response',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('feedback_item_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['feedback_item_id'], ['feedback_item.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('feedback_item_id', name='uq_feedback_response_item'),
    )

    op.create_table(
        'access_token',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('token_hash', sa.Text(), nullable=False),
        sa.Column('feedback_item_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['feedback_item_id'], ['feedback_item.id'], ondelete='CASCADE'),
        sa.CheckConstraint("role IN ('recipient', 'sender')", name='ck_access_token_role'),
    )
    op.create_index('ix_access_token_hash', 'access_token', ['token_hash'], unique=True)
    op.create_index('ix_access_token_item', 'access_token', ['feedback_item_id'])


def downgrade():
    op.drop_table('access_token')
    op.drop_table('feedback_response')
    op.drop_table('feedback_transition')
    op.drop_table('feedback_item')
