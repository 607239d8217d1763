"""Persistence layer: database pool, models, repositories and migrations."""
