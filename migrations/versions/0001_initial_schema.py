"""initial clubhouse schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-10-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)
JSONB = postgresql.JSONB(astext_type=sa.Text())


def _id():
    return sa.Column('id', UUID, primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _profile_fk(name, nullable=True, ondelete='SET NULL'):
    return sa.Column(name, UUID, sa.ForeignKey('user_profiles.id', ondelete=ondelete), nullable=nullable)


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    op.create_table(
        'waitlist',
        _id(),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('first_name', sa.Text(), nullable=False),
        sa.Column('last_name', sa.Text(), nullable=False),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='waiting'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status in ('waiting','invited','paid','deferred','cancelled','completed','no_reply','joined')",
            name='ck_waitlist_status',
        ),
    )
    op.create_index('ix_waitlist_status', 'waitlist', ['status'])

    op.create_table(
        'user_profiles',
        _id(),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('customer_id', sa.Text(), nullable=True),
        sa.Column('roles', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('next_of_kin_name', sa.Text(), nullable=True),
        sa.Column('next_of_kin_phone', sa.Text(), nullable=True),
        sa.Column('waitlist_id', UUID, sa.ForeignKey('waitlist.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'])

    op.create_table(
        'workshops',
        _id(),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.Text(), nullable=False),
        sa.Column('start_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('price_member', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price_non_member', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('refund_days', sa.Integer(), nullable=True, server_default='3'),
        sa.Column('status', sa.Text(), nullable=False, server_default='planned'),
        sa.Column('announce_discord', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('announce_email', sa.Boolean(), nullable=False, server_default=sa.false()),
        _profile_fk('created_by'),
        *_timestamps(),
        sa.CheckConstraint("status in ('planned','published','cancelled','finished')", name='ck_workshops_status'),
        sa.CheckConstraint('max_capacity > 0', name='ck_workshops_max_capacity'),
        sa.CheckConstraint('price_member >= 0 AND price_non_member >= 0', name='ck_workshops_prices'),
        sa.CheckConstraint('refund_days IS NULL OR refund_days >= 0', name='ck_workshops_refund_days'),
    )
    op.create_index('ix_workshops_status', 'workshops', ['status'])
    op.create_index('ix_workshops_start_date', 'workshops', ['start_date'])

    op.create_table(
        'workshop_interest',
        _id(),
        sa.Column('workshop_id', UUID, sa.ForeignKey('workshops.id', ondelete='CASCADE'), nullable=False),
        _profile_fk('user_id', nullable=False, ondelete='CASCADE'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('workshop_id', 'user_id', name='uq_workshop_interest_user'),
    )
    op.create_index('ix_workshop_interest_workshop_id', 'workshop_interest', ['workshop_id'])

    op.create_table(
        'workshop_registrations',
        _id(),
        sa.Column('workshop_id', UUID, sa.ForeignKey('workshops.id', ondelete='CASCADE'), nullable=False),
        _profile_fk('member_user_id', nullable=False, ondelete='CASCADE'),
        sa.Column('stripe_payment_intent_id', sa.Text(), nullable=True, unique=True),
        sa.Column('amount_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.Text(), nullable=False, server_default='eur'),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('registered_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('confirmed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('registration_notes', sa.Text(), nullable=True),
        sa.Column('attendance_status', sa.Text(), nullable=True),
        sa.Column('attendance_marked_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _profile_fk('attendance_marked_by', ondelete=None),
        sa.Column('attendance_notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('workshop_id', 'member_user_id', name='uq_workshop_registrations_member'),
        sa.CheckConstraint(
            "status in ('pending','confirmed','cancelled','refunded')", name='ck_workshop_registrations_status'
        ),
        sa.CheckConstraint(
            "attendance_status IS NULL OR attendance_status in ('attended','no_show','excused')",
            name='ck_workshop_registrations_attendance',
        ),
    )
    op.create_index('ix_workshop_registrations_workshop_id', 'workshop_registrations', ['workshop_id'])
    op.create_index('ix_workshop_registrations_status', 'workshop_registrations', ['status'])

    op.create_table(
        'workshop_refunds',
        _id(),
        sa.Column(
            'registration_id', UUID, sa.ForeignKey('workshop_registrations.id', ondelete='CASCADE'),
            nullable=False, unique=True,
        ),
        sa.Column('refund_amount', sa.Integer(), nullable=False),
        sa.Column('refund_reason', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('stripe_refund_id', sa.Text(), nullable=True, unique=True),
        sa.Column('stripe_payment_intent_id', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _profile_fk('requested_by', ondelete=None),
        _profile_fk('processed_by', ondelete=None),
        *_timestamps(),
        sa.CheckConstraint('refund_amount > 0', name='ck_workshop_refunds_amount'),
        sa.CheckConstraint(
            "status in ('pending','processing','completed','failed','cancelled')", name='ck_workshop_refunds_status'
        ),
    )
    op.create_index('ix_workshop_refunds_status', 'workshop_refunds', ['status'])

    op.create_table(
        'workshop_attendees',
        _id(),
        sa.Column('workshop_id', UUID, sa.ForeignKey('workshops.id', ondelete='CASCADE'), nullable=False),
        _profile_fk('user_profile_id', nullable=False, ondelete='CASCADE'),
        sa.Column('status', sa.Text(), nullable=False, server_default='invited'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('invited_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('payment_url_token', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _profile_fk('cancelled_by', ondelete=None),
        sa.Column('refund_requested', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('refund_processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('stripe_refund_id', sa.Text(), nullable=True),
        sa.Column('waitlist_return_requested', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('workshop_id', 'user_profile_id', name='uq_workshop_attendees_profile'),
        sa.CheckConstraint(
            "status in ('invited','pending','confirmed','attended','no_show','cancelled')",
            name='ck_workshop_attendees_status',
        ),
    )

    op.create_table(
        'equipment_categories',
        _id(),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('available_attributes', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
    )

    op.create_table(
        'containers',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_container_id', UUID, sa.ForeignKey('containers.id', ondelete='SET NULL'), nullable=True),
        _profile_fk('created_by'),
        *_timestamps(),
    )
    op.create_index('ix_containers_parent_container_id', 'containers', ['parent_container_id'])

    op.create_table(
        'inventory_items',
        _id(),
        sa.Column('container_id', UUID, sa.ForeignKey('containers.id'), nullable=False),
        sa.Column('category_id', UUID, sa.ForeignKey('equipment_categories.id'), nullable=False),
        sa.Column('attributes', JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('out_for_maintenance', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('photo_url', sa.Text(), nullable=True),
        _profile_fk('created_by'),
        _profile_fk('updated_by'),
        *_timestamps(),
        sa.CheckConstraint('quantity > 0', name='ck_inventory_items_quantity'),
    )
    op.create_index('ix_inventory_items_container_id', 'inventory_items', ['container_id'])
    op.create_index('ix_inventory_items_category_id', 'inventory_items', ['category_id'])

    op.create_table(
        'inventory_history',
        _id(),
        sa.Column('item_id', UUID, sa.ForeignKey('inventory_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('old_container_id', UUID, sa.ForeignKey('containers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('new_container_id', UUID, sa.ForeignKey('containers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _profile_fk('changed_by'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "action in ('created','updated','moved','maintenance_out','maintenance_in')",
            name='ck_inventory_history_action',
        ),
    )
    op.create_index('ix_inventory_history_item_id', 'inventory_history', ['item_id'])
    op.create_index('ix_inventory_history_created_at', 'inventory_history', ['created_at'])

    op.create_table(
        'invitations',
        _id(),
        sa.Column('email', sa.Text(), nullable=False),
        _profile_fk('user_id', ondelete='CASCADE'),
        sa.Column('waitlist_id', UUID, sa.ForeignKey('waitlist.id', ondelete='SET NULL'), nullable=True),
        sa.Column('invitation_type', sa.Text(), nullable=False, server_default='admin'),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column(
            'expires_at', sa.TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("now() + interval '7 days'"),
        ),
        sa.Column('accepted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('metadata', JSONB, nullable=True),
        _profile_fk('created_by'),
        *_timestamps(),
        sa.CheckConstraint("invitation_type in ('workshop','admin')", name='ck_invitations_type'),
        sa.CheckConstraint("status in ('pending','accepted','expired','revoked')", name='ck_invitations_status'),
    )
    op.create_index('ix_invitations_email', 'invitations', ['email'])
    op.create_index('ix_invitations_status', 'invitations', ['status'])

    settings = op.create_table(
        'settings',
        _id(),
        sa.Column('key', sa.Text(), nullable=False, unique=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False, server_default='text'),
        sa.Column('description', sa.Text(), nullable=True),
        _profile_fk('updated_by'),
        *_timestamps(),
        sa.CheckConstraint("type in ('text','boolean')", name='ck_settings_type'),
    )
    op.bulk_insert(
        settings,
        [
            {'key': 'waitlist_open', 'value': 'false', 'type': 'boolean',
             'description': 'Whether the public waitlist accepts new entries'},
            {'key': 'hema_insurance_form_link', 'value': '', 'type': 'text',
             'description': 'Link to the HEMA insurance form shown during signup'},
            {'key': 'subscription_max_pause_months', 'value': '3', 'type': 'text',
             'description': 'Maximum subscription pause in months'},
            {'key': 'subscription_min_pause_days', 'value': '7', 'type': 'text',
             'description': 'Minimum subscription pause in days'},
        ],
    )

    op.create_table(
        'audit_logs',
        _id(),
        _profile_fk('actor_user_id'),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', UUID, nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', JSONB, nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'audit_logs',
        'settings',
        'invitations',
        'inventory_history',
        'inventory_items',
        'containers',
        'equipment_categories',
        'workshop_attendees',
        'workshop_refunds',
        'workshop_registrations',
        'workshop_interest',
        'workshops',
        'user_profiles',
        'waitlist',
    ):
        op.drop_table(table)
