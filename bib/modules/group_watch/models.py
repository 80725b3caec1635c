# Supabase tables for group watch: shared groups where friends pool and vote on picks.

"""
Expected Supabase table structure:

watch_groups:
- id: uuid (primary key)
- owner_id: uuid (foreign key to users.id)
- name: text (2..60 chars)
- description: text (nullable, <= 300 chars)
- created_at, updated_at: timestamp

watch_group_members:
- group_id: uuid (foreign key to watch_groups.id)
- user_id: uuid (foreign key to users.id)
- role: text ('owner' | 'member')
- primary key (group_id, user_id)

watch_group_invites:
- id: uuid (primary key)
- group_id, inviter_id, invitee_id: uuid
- status: text ('pending' | 'accepted' | 'rejected' | 'canceled')
- created_at, updated_at, responded_at: timestamp

watch_group_picks:
- id: uuid (primary key)
- group_id, sender_id: uuid
- media_type: text ('movie' | 'show')
- tmdb_id: text
- title: text (<= 200), poster: text (nullable, <= 500)
- release_year: integer (nullable), note: text (nullable, <= 400)
- created_at: timestamp
- unique (group_id, media_type, tmdb_id)

watch_group_pick_votes:
- pick_id, user_id: uuid, unique (pick_id, user_id)
- vote_value: smallint (-1 | 1)
- updated_at: timestamp

RPC respond_watch_group_invite(p_invite_id uuid, p_decision text)
  -> rows of (invite_id, group_id, status); adds the membership on accept.
"""
