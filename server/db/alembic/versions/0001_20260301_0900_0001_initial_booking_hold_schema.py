"""Initial booking-hold schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

HOLD_STATUSES = "'pending', 'confirmed', 'cancelled', 'expired', 'refunded'"


def _hold_columns() -> list[sa.Column]:
    """Columns shared by tour_bookings and package_bookings."""
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('traveler_id', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('total_price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=64), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('payment_metadata', sa.JSON(), nullable=True),
        sa.Column('payment_error', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # Create tours table
    op.create_table('tours',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('operator_id', sa.String(length=128), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_tours_operator_id'), 'tours', ['operator_id'], unique=False)
    op.create_index(op.f('ix_tours_slug'), 'tours', ['slug'], unique=False)

    # Create tour_schedules table
    op.create_table('tour_schedules',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tour_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('capacity > 0', name='ck_tour_schedule_capacity_positive'),
        sa.CheckConstraint('price_amount >= 0', name='ck_tour_schedule_price_non_negative'),
        sa.CheckConstraint('length(price_currency) = 3', name='ck_tour_schedule_currency_length'),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tour_schedules_starts_at'), 'tour_schedules', ['starts_at'], unique=False)
    op.create_index(op.f('ix_tour_schedules_tour_id'), 'tour_schedules', ['tour_id'], unique=False)

    # Create packages table
    op.create_table('packages',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('owner_id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('max_guests', sa.Integer(), nullable=True),
        sa.Column('minimum_nights', sa.Integer(), nullable=False),
        sa.Column('maximum_nights', sa.Integer(), nullable=True),
        sa.Column('price_per_night_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('minimum_nights >= 1', name='ck_package_minimum_nights_positive'),
        sa.CheckConstraint(
            'maximum_nights IS NULL OR maximum_nights >= minimum_nights',
            name='ck_package_maximum_nights_gte_minimum'
        ),
        sa.CheckConstraint('max_guests IS NULL OR max_guests > 0', name='ck_package_max_guests_positive'),
        sa.CheckConstraint('price_per_night_amount >= 0', name='ck_package_price_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_packages_owner_id'), 'packages', ['owner_id'], unique=False)
    op.create_index(op.f('ix_packages_slug'), 'packages', ['slug'], unique=False)

    # Create tour_bookings table
    op.create_table('tour_bookings',
        *_hold_columns(),
        sa.Column('schedule_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('pax_count', sa.Integer(), nullable=False),
        sa.CheckConstraint('pax_count > 0', name='ck_tour_booking_pax_positive'),
        sa.CheckConstraint('total_price_amount >= 0', name='ck_tour_booking_price_non_negative'),
        sa.CheckConstraint(f'status IN ({HOLD_STATUSES})', name='ck_tour_booking_status_valid'),
        sa.CheckConstraint(
            "status != 'confirmed' OR payment_status = 'paid'",
            name='ck_tour_booking_confirmed_is_paid'
        ),
        sa.ForeignKeyConstraint(['schedule_id'], ['tour_schedules.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_intent_id')
    )
    op.create_index(op.f('ix_tour_bookings_schedule_id'), 'tour_bookings', ['schedule_id'], unique=False)
    op.create_index(op.f('ix_tour_bookings_traveler_id'), 'tour_bookings', ['traveler_id'], unique=False)
    op.create_index(op.f('ix_tour_bookings_payment_intent_id'), 'tour_bookings', ['payment_intent_id'], unique=False)
    op.create_index('ix_tour_bookings_status_expires_at', 'tour_bookings', ['status', 'expires_at'], unique=False)

    # Create package_bookings table
    op.create_table('package_bookings',
        *_hold_columns(),
        sa.Column('package_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('guest_count', sa.Integer(), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('number_of_nights', sa.Integer(), nullable=False),
        sa.Column('price_per_night_amount', sa.Integer(), nullable=False),
        sa.CheckConstraint('guest_count > 0', name='ck_package_booking_guests_positive'),
        sa.CheckConstraint('check_out_date > check_in_date', name='ck_package_booking_dates_ordered'),
        sa.CheckConstraint('number_of_nights > 0', name='ck_package_booking_nights_positive'),
        sa.CheckConstraint('total_price_amount >= 0', name='ck_package_booking_price_non_negative'),
        sa.CheckConstraint(f'status IN ({HOLD_STATUSES})', name='ck_package_booking_status_valid'),
        sa.CheckConstraint(
            "status != 'confirmed' OR payment_status = 'paid'",
            name='ck_package_booking_confirmed_is_paid'
        ),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_intent_id')
    )
    op.create_index(op.f('ix_package_bookings_package_id'), 'package_bookings', ['package_id'], unique=False)
    op.create_index(op.f('ix_package_bookings_traveler_id'), 'package_bookings', ['traveler_id'], unique=False)
    op.create_index(
        op.f('ix_package_bookings_payment_intent_id'), 'package_bookings', ['payment_intent_id'], unique=False
    )
    op.create_index(
        'ix_package_bookings_status_expires_at', 'package_bookings', ['status', 'expires_at'], unique=False
    )
    op.create_index(
        'ix_package_bookings_package_dates',
        'package_bookings',
        ['package_id', 'check_in_date', 'check_out_date'],
        unique=False
    )

    # Create payment_webhooks table
    op.create_table('payment_webhooks',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('stripe_event_id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('booking_type', sa.String(length=20), nullable=True),
        sa.Column('booking_id', sa.String(length=64), nullable=True),
        sa.Column('event_data', sa.JSON(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('length(stripe_event_id) > 0', name='ck_payment_webhook_event_id_not_empty'),
        sa.CheckConstraint('length(event_type) > 0', name='ck_payment_webhook_event_type_not_empty'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_event_id')
    )
    op.create_index(op.f('ix_payment_webhooks_stripe_event_id'), 'payment_webhooks', ['stripe_event_id'], unique=False)
    op.create_index(op.f('ix_payment_webhooks_booking_id'), 'payment_webhooks', ['booking_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('payment_webhooks')
    op.drop_table('package_bookings')
    op.drop_table('tour_bookings')
    op.drop_table('packages')
    op.drop_table('tour_schedules')
    op.drop_table('tours')
