#!/usr/bin/env python3
"""Emit deterministic SQL that provisions an organization and its first admin."""

from __future__ import annotations

import argparse

ROLES = ["admin", "hiring_manager", "recruiter", "interviewer", "coordinator"]


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def _nullable(value: str | None) -> str:
    if value is None:
        return "null"
    return _quote_sql(value)


def render_sql(
    *,
    organization_name: str,
    user_id: str,
    email: str,
    role: str,
    first_name: str | None,
    last_name: str | None,
    organization_id: str | None,
) -> str:
    if organization_id:
        organization_select = f"select {_quote_sql(organization_id)}::uuid as id"
        organization_insert = f"""insert into organizations (id, name)
values ({_quote_sql(organization_id)}::uuid, {_quote_sql(organization_name)})
on conflict (id) do nothing;"""
    else:
        organization_select = f"select id from organizations where name = {_quote_sql(organization_name)} limit 1"
        organization_insert = f"""insert into organizations (name)
select {_quote_sql(organization_name)}
where not exists (select 1 from organizations where name = {_quote_sql(organization_name)});"""

    return f"""-- tenant-ats organization bootstrap SQL
-- users.id must match the Supabase auth.users id of the person signing in.

begin;

{organization_insert}

insert into users (id, organization_id, email, first_name, last_name, role)
select {_quote_sql(user_id)}::uuid, org.id, {_quote_sql(email)}, {_nullable(first_name)}, {_nullable(last_name)}, {_quote_sql(role)}
from ({organization_select}) as org
on conflict (id) do update
set role = excluded.role, active = true, updated_at = now();

insert into activities (organization_id, actor_id, action_key, entity_type, entity_id, payload)
select org.id, null, 'organization.bootstrap', 'user', {_quote_sql(user_id)}::uuid, jsonb_build_object('role', {_quote_sql(role)})
from ({organization_select}) as org;

commit;
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to bootstrap an organization and its first user.")
    parser.add_argument("--organization", required=True, help="Organization name")
    parser.add_argument("--organization-id", help="Fixed organization UUID (optional)")
    parser.add_argument("--user-id", required=True, help="Supabase auth.users id (UUID)")
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--first-name")
    parser.add_argument("--last-name")
    parser.add_argument("--role", choices=ROLES, default="admin", help="Role within the organization")
    args = parser.parse_args()

    print(
        render_sql(
            organization_name=args.organization,
            user_id=args.user_id,
            email=args.email,
            role=args.role,
            first_name=args.first_name,
            last_name=args.last_name,
            organization_id=args.organization_id,
        )
    )


if __name__ == "__main__":
    main()
