# Supabase table: users (public profiles)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, references auth.users.id)
- email: text (unique)
- name: text
- username: text (unique)
- avatar: text (emoji, default '🎬')
- theme: text (nullable)
- birthdate: date (nullable)
- created_at: timestamp (default: now())

RLS: profiles are readable by any signed-in user, writable only by their owner.
"""
