# Supabase table: watch_reminders
# One reminder per (user, movie); re-saving reschedules it.

"""
Expected Supabase table structure:

watch_reminders:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- movie_id: text (not null; "123", "tmdb-123", "tmdbtv-123" or "show::<id>")
- movie_title: text (not null)
- movie_poster: text (nullable)
- movie_year: integer (nullable)
- remind_at: timestamp (not null)
- notified_at: timestamp (nullable, set when a poll claims the reminder)
- canceled_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- unique constraint on (user_id, movie_id)
"""
