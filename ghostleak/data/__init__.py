"""Persistence: SQLite key-value state, dedup set, finding store."""
