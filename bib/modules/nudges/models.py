# Supabase table: nudges
# A "have you watched this yet?" poke from one friend to another.

"""
Expected Supabase table structure:

nudges:
- id: uuid (primary key)
- from_user_id: uuid (foreign key to users.id, not null)
- to_user_id: uuid (foreign key to users.id, not null)
- recommendation_id: uuid (nullable)
- friend_recommendation_id: uuid (nullable)
- tmdb_id: text (nullable)
- movie_title, movie_poster: text (nullable)
- movie_year: integer (nullable)
- message: text (nullable)
- is_read: boolean (default false)
- created_at: timestamp (default: now())

Partial unique indexes on (from_user_id, to_user_id, recommendation_id) and
(from_user_id, to_user_id, tmdb_id) make repeated nudges a 23505.
"""
