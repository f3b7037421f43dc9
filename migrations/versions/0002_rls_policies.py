"""row level security policies

Policies read the caller claims bound per transaction by the service layer:

  SELECT set_config('request.jwt.claims', '<json>', true);
  SELECT set_config('request.jwt.claim.sub', '<uuid>', true);
  SET LOCAL ROLE authenticated;

Connections that keep the owner role (migrations, the public invitation flow)
are not subject to these policies.

Revision ID: 0002_rls_policies
Revises: 0001_initial_schema
Create Date: 2025-10-01 12:30:00.000000

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0002_rls_policies'
down_revision: Union[str, None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WORKSHOP = "'workshop_coordinator','president','admin'"
ATTENDEE_MANAGEMENT = "'admin','president','beginners_coordinator'"
INVENTORY = "'quartermaster','admin','president'"
INVENTORY_READ = "'quartermaster','admin','president','member'"
SETTINGS = "'president','committee_coordinator','admin'"
INVITATION = "'admin','president','committee_coordinator'"


def _roles(group: str) -> str:
    return f"has_any_role(ARRAY[{group}])"


# table -> list of (policy suffix, command, USING / WITH CHECK expression)
POLICIES = {
    'workshops': [
        ('select', 'SELECT', 'true'),
        ('manage', 'ALL', _roles(WORKSHOP)),
    ],
    'workshop_interest': [
        ('select', 'SELECT', 'true'),
        ('own', 'ALL', 'user_id = auth_uid()'),
    ],
    'workshop_registrations': [
        ('own', 'ALL', 'member_user_id = auth_uid()'),
        ('manage', 'ALL', _roles(WORKSHOP)),
    ],
    'workshop_refunds': [
        ('manage', 'ALL', _roles(WORKSHOP)),
    ],
    'workshop_attendees': [
        ('select', 'SELECT', _roles(WORKSHOP)),
        ('manage', 'ALL', _roles(ATTENDEE_MANAGEMENT)),
    ],
    'equipment_categories': [
        ('select', 'SELECT', _roles(INVENTORY_READ)),
        ('manage', 'ALL', _roles(INVENTORY)),
    ],
    'containers': [
        ('select', 'SELECT', _roles(INVENTORY_READ)),
        ('manage', 'ALL', _roles(INVENTORY)),
    ],
    'inventory_items': [
        ('select', 'SELECT', _roles(INVENTORY_READ)),
        ('manage', 'ALL', _roles(INVENTORY)),
    ],
    'inventory_history': [
        ('select', 'SELECT', _roles(INVENTORY_READ)),
        ('manage', 'ALL', _roles(INVENTORY)),
    ],
    'invitations': [
        ('manage', 'ALL', _roles(INVITATION)),
    ],
    'waitlist': [
        ('manage', 'ALL', f"{_roles(INVITATION)} OR {_roles(ATTENDEE_MANAGEMENT)}"),
    ],
    'user_profiles': [
        ('own', 'SELECT', 'id = auth_uid()'),
        ('select', 'SELECT', f"{_roles(ATTENDEE_MANAGEMENT)} OR {_roles(WORKSHOP)} OR {_roles(INVITATION)}"),
        ('manage', 'ALL', _roles(INVITATION)),
    ],
    'settings': [
        ('select', 'SELECT', 'true'),
        ('manage', 'ALL', _roles(SETTINGS)),
    ],
    'audit_logs': [
        ('insert', 'INSERT', 'true'),
        ('select', 'SELECT', _roles(SETTINGS)),
    ],
}


def _create_policy(table: str, suffix: str, command: str, expression: str) -> str:
    name = f"{table}_{suffix}"
    if command == 'INSERT':
        clause = f"WITH CHECK ({expression})"
    elif command == 'SELECT':
        clause = f"USING ({expression})"
    else:
        clause = f"USING ({expression}) WITH CHECK ({expression})"
    return (
        f"DROP POLICY IF EXISTS {name} ON {table};\n"
        f"CREATE POLICY {name} ON {table} FOR {command} TO authenticated {clause};"
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(
        """
        DO $$
        BEGIN
          IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = 'authenticated') THEN
            CREATE ROLE authenticated NOLOGIN;
          END IF;
        END
        $$;
        """
    )
    op.execute("GRANT authenticated TO CURRENT_USER")
    op.execute("GRANT USAGE ON SCHEMA public TO authenticated")
    op.execute(
        """
        CREATE OR REPLACE FUNCTION auth_uid() RETURNS uuid
        LANGUAGE sql STABLE AS $$
          SELECT NULLIF(current_setting('request.jwt.claim.sub', true), '')::uuid
        $$;
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION has_any_role(required text[]) RETURNS boolean
        LANGUAGE sql STABLE AS $$
          SELECT COALESCE(
            (NULLIF(current_setting('request.jwt.claims', true), '')::jsonb -> 'app_metadata' -> 'roles')
              ?| required,
            false
          )
        $$;
        """
    )
    for table, policies in POLICIES.items():
        op.execute(f"GRANT SELECT, INSERT, UPDATE, DELETE ON {table} TO authenticated")
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        for suffix, command, expression in policies:
            op.execute(_create_policy(table, suffix, command, expression))


def downgrade() -> None:
    """Downgrade schema."""
    for table, policies in POLICIES.items():
        for suffix, _, _ in policies:
            op.execute(f"DROP POLICY IF EXISTS {table}_{suffix} ON {table}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
        op.execute(f"REVOKE ALL ON {table} FROM authenticated")
    op.execute("DROP FUNCTION IF EXISTS has_any_role(text[])")
    op.execute("DROP FUNCTION IF EXISTS auth_uid()")
