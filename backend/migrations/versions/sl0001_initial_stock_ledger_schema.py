"""initial stock ledger schema

Revision ID: sl0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete schema from scratch:
- roles / users / session_tokens: identity collaborator
- ingredients: master data + current stock (version_id for optimistic locking,
  baseline_quantity for the ledger equation). Quantities are integer
  milli-units, unit_cost integer 1/10000 units (see models.types.ScaledDecimal)
- ingredient_movements: append-only stock movements, no FK to ingredients
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'sl0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # roles: lookup keys into the access policy table
    # ============================================================================
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('role_name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('role_name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_role_id', 'users', ['role_id'])

    # ============================================================================
    # session_tokens: only the SHA-256 of each token is stored
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)

    # ============================================================================
    # ingredients
    # ============================================================================
    op.create_table(
        'ingredients',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('stock_quantity', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('baseline_quantity', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('unit_cost', sa.BigInteger(), nullable=False),
        sa.Column('minimum_stock', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('unit_cost > 0', name='ck_ingredients_unit_cost_positive'),
        sa.CheckConstraint('minimum_stock >= 0', name='ck_ingredients_minimum_stock_non_negative'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_ingredients_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ingredients_name', 'ingredients', ['name'])

    # ============================================================================
    # ingredient_movements: append-only; ingredient_id deliberately has no FK
    # (orphans after ingredient deletion are tolerated)
    # ============================================================================
    op.create_table(
        'ingredient_movements',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('ingredient_id', sa.String(length=36), nullable=False),
        sa.Column('movement_type', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.BigInteger(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('compensates_movement_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity > 0', name='ck_movements_quantity_positive'),
        sa.CheckConstraint("movement_type IN ('in', 'out')", name='ck_movements_type'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('compensates_movement_id'),
    )
    op.create_index('ix_ingredient_movements_ingredient_id', 'ingredient_movements', ['ingredient_id'])
    op.create_index('ix_ingredient_movements_created_at', 'ingredient_movements', ['created_at'])
    op.create_index('ix_movements_ingredient_created', 'ingredient_movements', ['ingredient_id', 'created_at'])


def downgrade():
    op.drop_index('ix_movements_ingredient_created', table_name='ingredient_movements')
    op.drop_index('ix_ingredient_movements_created_at', table_name='ingredient_movements')
    op.drop_index('ix_ingredient_movements_ingredient_id', table_name='ingredient_movements')
    op.drop_table('ingredient_movements')

    op.drop_index('ix_ingredients_name', table_name='ingredients')
    op.drop_table('ingredients')

    op.drop_index('ix_session_tokens_token_hash', table_name='session_tokens')
    op.drop_index('ix_session_tokens_user_id', table_name='session_tokens')
    op.drop_table('session_tokens')

    op.drop_index('ix_users_role_id', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')

    op.drop_table('roles')
