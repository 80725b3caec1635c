# Supabase table: friends
# Directed edges: a row (user_id, friend_id) means user_id follows friend_id as a friend.

"""
Expected Supabase table structure:

friends:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- friend_id: uuid (foreign key to users.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (user_id, friend_id)

RLS: users see, insert and delete only rows where user_id = auth.uid().
"""
