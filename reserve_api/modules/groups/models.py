# Supabase tables: groups, user_group_relations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: bigint (primary key)
- name: text (nullable)
- description: text (nullable)
- created_at: timestamptz (default: now())

user_group_relations:
- id: bigint (primary key)
- group_id: bigint (foreign key to groups.id)
- user_id: bigint (foreign key to profiles.id) - the member's profile, not the auth user
- created_at: timestamptz (default: now())

Groups are organizational only. They are unrelated to reserve_groups, which
mark the reservations of one weekly series.
"""
