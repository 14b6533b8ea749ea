"""mining ledger: users, mining records, balance history, invites

Revision ID: 3f1c2a9b7d40
Revises:
Create Date: 2026-10-18 09:12:31.402117

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f1c2a9b7d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=True),
        sa.Column('avatar_url', sa.String(length=255), nullable=True),
        sa.Column('referral_code', sa.String(length=16), nullable=False),
        sa.Column('referred_by', sa.String(length=16), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_referral_code'), ['referral_code'], unique=True)

    op.create_table(
        'mining_records',
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('balance', sa.Numeric(precision=36, scale=18), nullable=False),
        sa.Column('mining_active', sa.Boolean(), nullable=False),
        sa.Column('last_start', sa.DateTime(), nullable=True),
        sa.Column('last_claim', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('user_id')
    )

    op.create_table(
        'balance_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('change_type', sa.String(length=60), nullable=False),
        sa.Column('change_amount', sa.Numeric(precision=36, scale=18), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('balance_history', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_balance_history_user_id'), ['user_id'], unique=False)

    op.create_table(
        'invite_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inviter_id', sa.String(length=128), nullable=False),
        sa.Column('invitee_id', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['invitee_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['inviter_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('invite_records', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invite_records_invitee_id'), ['invitee_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_invite_records_inviter_id'), ['inviter_id'], unique=False)


def downgrade():
    with op.batch_alter_table('invite_records', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_invite_records_inviter_id'))
        batch_op.drop_index(batch_op.f('ix_invite_records_invitee_id'))
    op.drop_table('invite_records')

    with op.batch_alter_table('balance_history', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_balance_history_user_id'))
    op.drop_table('balance_history')

    op.drop_table('mining_records')

    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_users_referral_code'))
    op.drop_table('users')
