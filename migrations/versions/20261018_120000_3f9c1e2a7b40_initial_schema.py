"""Initial schema: users, roles, profiles, donations, reports, organizations, metrics

Revision ID: 3f9c1e2a7b40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = '3f9c1e2a7b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    existing_tables = inspect(conn).get_table_names()

    if 'role' not in existing_tables:
        op.create_table('role',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=80), nullable=True),
            sa.Column('description', sa.String(length=255), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('name')
        )

    if 'user' not in existing_tables:
        op.create_table('user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password', sa.String(length=255), nullable=True),
            sa.Column('active', sa.Boolean(), nullable=True),
            sa.Column('fs_uniquifier', sa.String(length=255), nullable=False),
            sa.Column('confirmed_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('email'),
            sa.UniqueConstraint('fs_uniquifier')
        )

    if 'roles_users' not in existing_tables:
        op.create_table('roles_users',
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('role_id', sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(['role_id'], ['role.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['user.id'], )
        )

    if 'profiles' not in existing_tables:
        op.create_table('profiles',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=120), nullable=False),
            sa.Column('organization', sa.String(length=200), nullable=True),
            sa.Column('phone', sa.String(length=30), nullable=True),
            sa.Column('avatar_url', sa.String(length=500), nullable=True),
            sa.Column('is_verified', sa.Boolean(), nullable=False),
            sa.Column('verified_at', sa.DateTime(), nullable=True),
            sa.Column('verified_by_id', sa.Integer(), nullable=True),
            sa.Column('is_flagged', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
            sa.ForeignKeyConstraint(['verified_by_id'], ['user.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id')
        )

    if 'donations' not in existing_tables:
        op.create_table('donations',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('donor_id', sa.Integer(), nullable=False),
            sa.Column('donor_type', sa.String(length=20), nullable=False),
            sa.Column('food_type', sa.String(length=20), nullable=False),
            sa.Column('category', sa.String(length=20), nullable=False),
            sa.Column('quantity', sa.Float(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('items', sa.Text(), nullable=True),
            sa.Column('pickup_address', sa.String(length=300), nullable=True),
            sa.Column('location', sa.String(length=64), nullable=False),  # "(lng,lat)"
            sa.Column('pickup_time_start', sa.Time(), nullable=True),
            sa.Column('pickup_time_end', sa.Time(), nullable=True),
            sa.Column('contact_person', sa.String(length=120), nullable=True),
            sa.Column('contact_number', sa.String(length=30), nullable=True),
            sa.Column('image_url', sa.String(length=500), nullable=True),
            sa.Column('expiry_time', sa.DateTime(), nullable=True),
            sa.Column('consent', sa.Boolean(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('accepted_by_id', sa.Integer(), nullable=True),
            sa.Column('accepted_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['accepted_by_id'], ['user.id'], ),
            sa.ForeignKeyConstraint(['donor_id'], ['user.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_donations_donor_id', 'donations', ['donor_id'], unique=False)
        op.create_index('ix_donations_status', 'donations', ['status'], unique=False)
        op.create_index('ix_donations_created_at', 'donations', ['created_at'], unique=False)

    if 'reports' not in existing_tables:
        op.create_table('reports',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('reporter_id', sa.Integer(), nullable=False),
            sa.Column('reported_user_id', sa.Integer(), nullable=True),
            sa.Column('donation_id', sa.Integer(), nullable=True),
            sa.Column('report_type', sa.String(length=20), nullable=False),
            sa.Column('reason', sa.Text(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('resolved_at', sa.DateTime(), nullable=True),
            sa.Column('resolved_by_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['donation_id'], ['donations.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['reported_user_id'], ['user.id'], ),
            sa.ForeignKeyConstraint(['reporter_id'], ['user.id'], ),
            sa.ForeignKeyConstraint(['resolved_by_id'], ['user.id'], ),
            sa.PrimaryKeyConstraint('id')
        )

    if 'organizations' not in existing_tables:
        op.create_table('organizations',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=200), nullable=False),
            sa.Column('type', sa.String(length=20), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('contact_person', sa.String(length=120), nullable=True),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('submitted_by_id', sa.Integer(), nullable=True),
            sa.Column('approved_by_id', sa.Integer(), nullable=True),
            sa.Column('approved_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['approved_by_id'], ['user.id'], ),
            sa.ForeignKeyConstraint(['submitted_by_id'], ['user.id'], ),
            sa.PrimaryKeyConstraint('id')
        )

    if 'metrics' not in existing_tables:
        op.create_table('metrics',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('food_saved_kg', sa.Float(), nullable=False),
            sa.Column('people_served', sa.Integer(), nullable=False),
            sa.Column('emissions_prevented_kg', sa.Float(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('date')
        )


def downgrade():
    op.drop_table('metrics')
    op.drop_table('organizations')
    op.drop_table('reports')
    op.drop_index('ix_donations_created_at', table_name='donations')
    op.drop_index('ix_donations_status', table_name='donations')
    op.drop_index('ix_donations_donor_id', table_name='donations')
    op.drop_table('donations')
    op.drop_table('profiles')
    op.drop_table('roles_users')
    op.drop_table('user')
    op.drop_table('role')
