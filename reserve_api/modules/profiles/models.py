# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: bigint (primary key) - referenced by reserve_member_relations.member_id
  and user_group_relations.user_id
- user_id: uuid (foreign key to auth.users.id, nullable)
- name: text (nullable)
- organization: text (nullable)
- admin: boolean (not null, default: false) - may edit or delete any reservation
- created_at: timestamptz (default: now())
"""
