# Supabase tables: reserves, reserve_groups, reserve_relations,
# reserve_group_relations, reserve_member_relations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in store.py

"""
Expected Supabase table structure:

reserves:
- id: bigint (primary key)
- user_id: uuid (foreign key to auth.users.id, nullable) - owner
- title: text (nullable)
- description: text (nullable)
- start_time: timestamptz (nullable)
- end_time: timestamptz (nullable)
- created_at: timestamptz (default: now())
- updated_at: timestamptz (nullable)

reserve_groups:
- id: bigint (primary key) - one row per weekly series
- created_at: timestamptz (default: now())

reserve_relations:
- id: bigint (primary key)
- reserve_id: bigint (foreign key to reserves.id)
- reserve_group_id: bigint (foreign key to reserve_groups.id)
- a reserve belongs to at most one series

reserve_group_relations:
- id: bigint (primary key)
- reserve_id: bigint (foreign key to reserves.id)
- group_id: bigint (foreign key to groups.id)

reserve_member_relations:
- id: bigint (primary key)
- reserve_id: bigint (foreign key to reserves.id)
- member_id: bigint (foreign key to profiles.id)

No exclusion constraint exists on (start_time, end_time); overlap checks run
in the API before writes, so two clients booking the same slot concurrently
can both succeed.
"""
