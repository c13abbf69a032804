"""initial_schema

Revision ID: 3f1c9a2b7d41
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'blocks',
        sa.Column('height', sa.Integer(), nullable=False),
        sa.Column('block_hash', sa.String(), nullable=False),
        sa.Column('tx_count', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
        sa.Column('mining_pool', sa.String(), nullable=True),
        sa.Column('fees_estimate', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('min_fee', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('max_fee', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('height'),
        sa.UniqueConstraint('block_hash'),
    )
    op.create_index('ix_blocks_mining_pool', 'blocks', ['mining_pool'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('txid', sa.String(length=64), nullable=False),
        sa.Column('block_height', sa.Integer(), nullable=True),
        sa.Column('total_input_value', sa.BigInteger(), nullable=False),
        sa.Column('total_output_value', sa.BigInteger(), nullable=False),
        sa.Column('fee', sa.BigInteger(), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('weight', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('txid'),
    )
    op.create_index('ix_transactions_block_height', 'transactions', ['block_height'])

    op.create_table(
        'inputs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('input_index', sa.Integer(), nullable=False),
        sa.Column('previous_txid', sa.String(length=64), nullable=True),
        sa.Column('previous_transaction_id', sa.Integer(), nullable=True),
        sa.Column('previous_output_index', sa.Integer(), nullable=True),
        sa.Column('script_sig', sa.Text(), nullable=True),
        sa.Column('sequence', sa.BigInteger(), nullable=True),
        sa.Column('value', sa.BigInteger(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id', 'input_index', name='uq_inputs_transaction_index'),
    )
    op.create_index('ix_inputs_previous_txid', 'inputs', ['previous_txid'])
    op.create_index('ix_inputs_previous_transaction_id', 'inputs', ['previous_transaction_id'])
    op.create_index('ix_inputs_address', 'inputs', ['address'])

    op.create_table(
        'outputs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('output_index', sa.Integer(), nullable=False),
        sa.Column('value', sa.BigInteger(), nullable=False),
        sa.Column('script_pub_key', sa.Text(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id', 'output_index', name='uq_outputs_transaction_index'),
    )
    op.create_index('ix_outputs_address', 'outputs', ['address'])

    op.create_table(
        'runestones',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('output_index', sa.Integer(), nullable=False),
        sa.Column('txid', sa.String(length=64), nullable=False),
        sa.Column('rune_name', sa.String(), nullable=True),
        sa.Column('formatted_rune_name', sa.String(), nullable=True),
        sa.Column('cenotaph', sa.Boolean(), nullable=False),
        sa.Column('error', sa.String(), nullable=True),
        sa.Column('decoded_json', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id', 'output_index', name='uq_runestones_transaction_output'),
    )
    op.create_index('ix_runestones_txid', 'runestones', ['txid'])
    op.create_index('ix_runestones_rune_name', 'runestones', ['rune_name'])
    op.create_index('ix_runestones_cenotaph', 'runestones', ['cenotaph'])

    op.create_table(
        'transaction_timing',
        sa.Column('txid', sa.String(length=64), nullable=False),
        sa.Column('mempool_time', sa.DateTime(), nullable=True),
        sa.Column('confirmation_time', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('txid'),
    )

    op.create_table(
        'transaction_replacements',
        sa.Column('txid', sa.String(length=64), nullable=False),
        sa.Column('replaced_by_txid', sa.String(length=64), nullable=False),
        sa.Column('detected_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('txid'),
    )
    op.create_index('ix_transaction_replacements_replaced_by_txid', 'transaction_replacements', ['replaced_by_txid'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('transaction_replacements')
    op.drop_table('transaction_timing')
    op.drop_table('runestones')
    op.drop_table('outputs')
    op.drop_table('inputs')
    op.drop_table('transactions')
    op.drop_table('blocks')
