"""initial_schema

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '3f1c9a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_picture', sa.Text(), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    op.create_table(
        'otp_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('code', sa.String(10), nullable=False),
        sa.Column('purpose', sa.Enum('registration', 'password_reset', name='otp_purpose'), nullable=False),
        sa.Column('status', sa.Enum('issued', 'verified', 'consumed', name='otp_status'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_otp_records_id', 'otp_records', ['id'])
    op.create_index('ix_otp_records_email', 'otp_records', ['email'])
    op.create_index('ix_otp_records_expires_at', 'otp_records', ['expires_at'])
    op.create_index('ix_otp_records_created_at', 'otp_records', ['created_at'])
    op.create_index('ix_otp_records_lookup', 'otp_records', ['email', 'purpose', 'status'])

    op.create_table(
        'rides',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('rider_id', sa.Uuid(), nullable=False),
        sa.Column('starting_point', sa.String(255), nullable=False),
        sa.Column('destination', sa.String(255), nullable=False),
        sa.Column('is_nust_start', sa.Boolean(), nullable=False),
        sa.Column('is_nust_dest', sa.Boolean(), nullable=False),
        sa.Column(
            'ride_frequency',
            sa.Enum('daily', 'weekly', 'monthly', 'one-time', name='ride_frequency'),
            nullable=False
        ),
        sa.Column('trip_type', sa.Enum('one-way', 'round-trip', name='trip_type'), nullable=False),
        sa.Column('departure_time', sa.String(50), nullable=False),
        sa.Column('return_time', sa.String(50), nullable=True),
        sa.Column('price', sa.String(50), nullable=False),
        sa.Column('vehicle_type', sa.Enum('car', 'bike', name='vehicle_type'), nullable=False),
        sa.Column('vehicle_details', sa.String(255), nullable=False),
        sa.Column('passenger_capacity', sa.String(20), nullable=True),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('additional_info', sa.Text(), nullable=True),
        sa.Column('user_name', sa.String(100), nullable=False),
        sa.Column('student_id', sa.String(50), nullable=False),
        sa.Column('phone_number', sa.String(30), nullable=False),
        sa.Column('is_primary_whatsapp', sa.Boolean(), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column(
            'preferred_contact_method',
            sa.Enum('whatsapp', 'call', 'sms', 'email', name='contact_method'),
            nullable=False
        ),
        sa.Column('share_contact_consent', sa.Boolean(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('active', 'completed', 'cancelled', name='ride_status'),
            nullable=False
        ),
        sa.Column('is_flagged', sa.Boolean(), nullable=False),
        sa.Column('flag_reason', sa.Text(), nullable=False),
        sa.Column(
            'moderation_status',
            sa.Enum('pending', 'approved', 'rejected', name='moderation_status'),
            nullable=False
        ),
        sa.Column('admin_notes', sa.Text(), nullable=False),
        sa.Column('last_moderated_by', sa.Uuid(), nullable=True),
        sa.Column('last_moderated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['rider_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['last_moderated_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_rides_id', 'rides', ['id'])
    op.create_index('ix_rides_rider_id', 'rides', ['rider_id'])
    op.create_index('ix_rides_status', 'rides', ['status'])
    op.create_index('ix_rides_created_at', 'rides', ['created_at'])

    op.create_table(
        'ride_stops',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ride_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(['ride_id'], ['rides.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ride_stops_ride_id', 'ride_stops', ['ride_id'])

    op.create_table(
        'ride_days',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ride_id', sa.Uuid(), nullable=False),
        sa.Column('day', sa.String(20), nullable=False),
        sa.ForeignKeyConstraint(['ride_id'], ['rides.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ride_days_ride_id', 'ride_days', ['ride_id'])
    op.create_index('ix_ride_days_day', 'ride_days', ['day'])


def downgrade() -> None:
    op.drop_table('ride_days')
    op.drop_table('ride_stops')
    op.drop_table('rides')
    op.drop_table('otp_records')
    op.drop_table('users')

    for enum_name in (
        'moderation_status', 'ride_status', 'contact_method', 'vehicle_type',
        'trip_type', 'ride_frequency', 'otp_status', 'otp_purpose',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
