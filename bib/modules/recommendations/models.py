# Supabase table: friend_recommendations
# A title one user suggests to a friend, optionally with a reminder time.

"""
Expected Supabase table structure:

friend_recommendations:
- id: uuid (primary key)
- sender_id: uuid (foreign key to users.id, not null)
- recipient_id: uuid (foreign key to users.id, not null)
- recommendation_id: uuid (nullable, the sender's own list entry)
- tmdb_id: text (nullable)
- movie_title: text (not null)
- movie_poster: text (default '')
- movie_year: integer (nullable)
- personal_message: text (default '')
- is_read: boolean (default false)
- is_watched: boolean (default false)
- watched_at: timestamp (nullable)
- remind_at: timestamp (nullable)
- reminder_notified_at: timestamp (nullable)
- created_at: timestamp (default: now())

Unique: (sender_id, recipient_id, coalesce(tmdb_id, recommendation_id::text, movie_title)).
is_watched, watched_at, remind_at and reminder_notified_at were added by a later
migration; readers fall back to the base columns when they are missing.
"""
