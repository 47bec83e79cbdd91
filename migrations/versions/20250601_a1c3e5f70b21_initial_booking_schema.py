"""initial_booking_schema

Revision ID: a1c3e5f70b21
Revises:
Create Date: 2025-06-01 10:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_type = sa.Enum('customer', 'professional', 'admin', name='user_type')
notification_channel = sa.Enum('in_app', 'email', 'push', name='notification_channel')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('type', user_type, nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_type', 'users', ['type'])

    op.create_table(
        'customer_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=False),
        sa.Column('profile_image', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_customer_profiles_user_id', 'customer_profiles', ['user_id'], unique=True)

    op.create_table(
        'professional_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=True),
        sa.Column('business_name', sa.String(length=150), nullable=True),
        sa.Column('location', sa.String(length=150), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('profile_image', sa.String(length=255), nullable=True),
        sa.Column('years_of_experience', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_professional_profiles_user_id', 'professional_profiles', ['user_id'], unique=True)

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_range', sa.String(length=50), nullable=True),
        sa.Column('duration_estimate', sa.Integer(), nullable=True, comment='Typical duration in minutes'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_services_name', 'services', ['name'])

    op.create_table(
        'availability',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('professional_id', sa.Uuid(), nullable=False),
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('from_time', sa.Time(), nullable=False),
        sa.Column('to_time', sa.Time(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('detailed', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('day >= 0 AND day <= 6', name='availability_day_range'),
        sa.CheckConstraint('from_time < to_time', name='availability_window_order'),
        sa.ForeignKeyConstraint(['professional_id'], ['professional_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_availability_professional_id', 'availability', ['professional_id'])

    booking_status = op.create_table(
        'booking_status',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('professional_id', sa.Uuid(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('availability_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False, comment='Duration in minutes'),
        sa.Column('status_id', sa.Integer(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('duration > 0', name='booking_positive_duration'),
        sa.ForeignKeyConstraint(['customer_id'], ['customer_profiles.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['professional_id'], ['professional_profiles.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id']),
        sa.ForeignKeyConstraint(['availability_id'], ['availability.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['status_id'], ['booking_status.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bookings_customer_id', 'bookings', ['customer_id'])
    op.create_index('ix_bookings_professional_id', 'bookings', ['professional_id'])
    op.create_index('ix_bookings_status_id', 'bookings', ['status_id'])
    op.create_index('ix_bookings_professional_date', 'bookings', ['professional_id', 'date'])
    # One active booking per professional and start time; cancelled rows release the slot
    op.create_index(
        'uq_bookings_active_slot',
        'bookings',
        ['professional_id', 'date', 'time'],
        unique=True,
        postgresql_where=sa.text('cancelled_at IS NULL'),
        sqlite_where=sa.text('cancelled_at IS NULL'),
    )

    op.create_table(
        'booking_status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('old_status', sa.String(length=50), nullable=False),
        sa.Column('new_status', sa.String(length=50), nullable=False),
        sa.Column('changed_by', sa.Uuid(), nullable=True, comment='Null when the change was system triggered'),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_booking_status_history_booking_id', 'booking_status_history', ['booking_id'])
    op.create_index('ix_booking_status_history_changed_at', 'booking_status_history', ['changed_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('channel', notification_channel, nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('metadata', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])

    # Default statuses; ids 1-4 are relied upon by existing clients
    op.bulk_insert(
        booking_status,
        [
            {'id': 1, 'name': 'pending', 'description': 'Booking is waiting for professional confirmation'},
            {'id': 2, 'name': 'confirmed', 'description': 'Booking has been confirmed by the professional'},
            {'id': 3, 'name': 'completed', 'description': 'Service has been delivered'},
            {'id': 4, 'name': 'cancelled', 'description': 'Booking has been cancelled'},
        ],
    )
    if op.get_bind().dialect.name == 'postgresql':
        op.execute(
            "SELECT setval(pg_get_serial_sequence('booking_status', 'id'), "
            "(SELECT MAX(id) FROM booking_status))"
        )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('booking_status_history')
    op.drop_index('uq_bookings_active_slot', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('booking_status')
    op.drop_table('availability')
    op.drop_table('services')
    op.drop_table('professional_profiles')
    op.drop_table('customer_profiles')
    op.drop_table('users')
    notification_channel.drop(op.get_bind(), checkfirst=True)
    user_type.drop(op.get_bind(), checkfirst=True)
