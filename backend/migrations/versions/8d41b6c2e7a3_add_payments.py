"""add payment table and user subscription window

Revision ID: 8d41b6c2e7a3
Revises: 3a7c9e1f2b40
Create Date: 2025-02-03 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8d41b6c2e7a3'
down_revision = '3a7c9e1f2b40'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('user')}
    with op.batch_alter_table('user') as batch_op:
        if 'valid_until' not in cols:
            batch_op.add_column(sa.Column('valid_until', sa.DateTime(), nullable=True))
        if 'last_payment_date' not in cols:
            batch_op.add_column(sa.Column('last_payment_date', sa.DateTime(), nullable=True))

    op.create_table(
        'payment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='BKASH'),
        sa.Column('transaction_id', sa.String(length=64), nullable=True, unique=True),
        sa.Column('bkash_number', sa.String(length=16), nullable=False),
        sa.Column('valid_until', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payment_user_id', 'payment', ['user_id'])
    op.create_index('ix_payment_valid_until', 'payment', ['valid_until'])


def downgrade():
    op.drop_index('ix_payment_valid_until', table_name='payment')
    op.drop_index('ix_payment_user_id', table_name='payment')
    op.drop_table('payment')
    with op.batch_alter_table('user') as batch_op:
        batch_op.drop_column('last_payment_date')
        batch_op.drop_column('valid_until')
