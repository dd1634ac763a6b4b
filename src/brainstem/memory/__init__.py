"""
Memory module - the shared source of truth for every agent.

Records are appended, never deleted; only the embedding of an existing
record may be filled in later by backfill.

Storage: SQLite + FTS5, cosine similarity as a SQL function
"""
