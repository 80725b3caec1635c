# Supabase Auth
# Accounts live in Supabase's auth.users table; the app keeps a public profile row per account.

"""
Supabase Auth provides:
- auth.sign_up() - anon signup (may require email confirmation)
- auth.admin.create_user() / delete_user() - service-role signup with rollback
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users

users (public profile):
- id: uuid (primary key, equals auth.users.id)
- email: text (unique)
- name: text
- username: text (unique, [a-z0-9_]{3,24})
- avatar: text (emoji)
- theme: text (nullable)
- birthdate: date (nullable)
- created_at: timestamp (default: now())

rpc check_username_available(username text) returns boolean (security definer, bypasses RLS)
"""
