# Supabase table: push_subscriptions
# Browser web-push endpoints; delivery happens elsewhere (database trigger + edge function).

"""
Expected Supabase table structure:

push_subscriptions:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- endpoint: text (unique, not null)
- p256dh: text (not null)
- auth: text (not null)
- created_at: timestamp (default: now())
"""
